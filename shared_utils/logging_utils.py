"""
Logging for the SAR Burned Area Progression Pipeline.

All pipeline loggers live under the `burn_progression` namespace
(`burn_progression.burned_area_mapping.dask`, ...). `setup_logging`
configures that namespace only, so embedding applications keep control of
the root logger. Chatty third-party loggers are capped at WARNING.

Author: Diego Bengochea
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_ROOT = 'burn_progression'

LOG_FORMATS = {
    'standard': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'detailed': '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
    'simple': '%(levelname)s: %(message)s'
}

QUIET_LIBRARIES = ('rasterio', 'fiona', 'pyogrio', 'distributed', 'matplotlib')


def setup_logging(
    level: Union[str, int] = 'INFO',
    component_name: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    format_style: str = 'standard'
) -> logging.Logger:
    """
    Configure console (and optional file) output for the pipeline loggers.
    
    Calling it again replaces the handlers installed by a previous call.
    
    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        component_name: Component logger to return
        log_file: Optional file path for logging output
        format_style: 'standard', 'detailed' or 'simple'
        
    Returns:
        logging.Logger: Component logger
        
    Examples:
        >>> logger = setup_logging('INFO', 'burned_area_mapping')
        >>> logger = setup_logging('DEBUG', 'burned_area_analysis', 'statistics.log')
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    
    pipeline_logger = logging.getLogger(LOGGER_ROOT)
    for handler in list(pipeline_logger.handlers):
        pipeline_logger.removeHandler(handler)
        handler.close()
    
    pipeline_logger.setLevel(level)
    pipeline_logger.propagate = False
    
    formatter = logging.Formatter(
        LOG_FORMATS.get(format_style, LOG_FORMATS['standard']),
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    pipeline_logger.addHandler(console_handler)
    
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        pipeline_logger.addHandler(file_handler)
    
    for library in QUIET_LIBRARIES:
        logging.getLogger(library).setLevel(max(level, logging.WARNING))
    
    return get_logger(component_name)


def get_logger(component_name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger for a specific component.
    
    Args:
        component_name: Name of the component, dotted names nest under it
        
    Returns:
        logging.Logger: Component logger
        
    Examples:
        >>> logger = get_logger('burned_area_mapping')
        >>> logger = get_logger('burned_area_mapping.dask')
    """
    if not component_name:
        return logging.getLogger(LOGGER_ROOT)
    return logging.getLogger(f'{LOGGER_ROOT}.{component_name}')


def log_pipeline_start(logger: logging.Logger, pipeline_name: str, config: dict = None) -> None:
    """
    Log standardized pipeline start message.
    
    Args:
        logger: Logger instance
        pipeline_name: Name of the pipeline being started
        config: Optional configuration dictionary to log its top-level sections
    """
    logger.info("=" * 80)
    logger.info(f"STARTING PIPELINE: {pipeline_name.upper()}")
    logger.info("=" * 80)
    
    if config:
        logger.info("Pipeline configuration:")
        for key, value in config.items():
            if key.startswith('_'):
                continue
            if isinstance(value, dict):
                logger.info(f"  {key}: {len(value)} parameters")
            else:
                logger.info(f"  {key}: {value}")


def log_pipeline_end(logger: logging.Logger, pipeline_name: str, success: bool = True, elapsed_time: float = None) -> None:
    """
    Log standardized pipeline completion message.
    
    Args:
        logger: Logger instance
        pipeline_name: Name of the completed pipeline
        success: Whether pipeline completed successfully
        elapsed_time: Optional elapsed time in seconds
    """
    logger.info("=" * 80)
    
    if success:
        logger.info(f"✅ PIPELINE COMPLETED SUCCESSFULLY: {pipeline_name.upper()}")
    else:
        logger.error(f"❌ PIPELINE FAILED: {pipeline_name.upper()}")
    
    if elapsed_time:
        hours = int(elapsed_time // 3600)
        minutes = int((elapsed_time % 3600) // 60)
        seconds = int(elapsed_time % 60)
        logger.info(f"Total execution time: {hours:02d}:{minutes:02d}:{seconds:02d}")
    
    logger.info("=" * 80)


def log_section(logger: logging.Logger, section_name: str) -> None:
    """Log a standardized section header."""
    logger.info(f"\n{'='*20} {section_name.upper()} {'='*20}")
