"""
Shared utilities for the SAR Burned Area Progression Pipeline.

This package provides common functionality used by the mapping and
analysis components:
- Standardized logging configuration
- Configuration file loading and validation
- Path handling and data directory constants
- Pipeline error types

Author: Diego Bengochea
"""

from .logging_utils import setup_logging, get_logger, log_pipeline_start, log_pipeline_end, log_section
from .config_utils import load_config, validate_config, get_config_value
from .path_utils import ensure_directory, find_files
from .exceptions import (
    BurnedAreaError,
    ConfigurationError,
    EmptyBaselineError,
    ClusterResolutionError,
    UpstreamIOError,
    EmptyStackError
)

__version__ = "1.0.0"

__all__ = [
    "setup_logging",
    "get_logger",
    "log_pipeline_start",
    "log_pipeline_end",
    "log_section",
    "load_config",
    "validate_config",
    "get_config_value",
    "ensure_directory",
    "find_files",
    "BurnedAreaError",
    "ConfigurationError",
    "EmptyBaselineError",
    "ClusterResolutionError",
    "UpstreamIOError",
    "EmptyStackError"
]
