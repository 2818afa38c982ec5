"""
Configuration utilities for the SAR Burned Area Progression Pipeline.

This module provides standardized configuration loading and validation
across all pipeline components.

Author: Diego Bengochea
"""

import yaml
import os
from pathlib import Path
from typing import Dict, Any, Optional, Union, List

from .exceptions import ConfigurationError
from .logging_utils import get_logger

CONFIG_ENV_VAR = 'BURN_PROGRESSION_CONFIG'
REPO_ROOT = Path(__file__).resolve().parent.parent


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    component_name: Optional[str] = None,
    default_config_name: str = "config.yaml"
) -> Dict[str, Any]:
    """
    Load configuration from YAML file with standardized search patterns.
    
    Search order:
    1. Explicit config_path if provided
    2. Component directory + default_config_name
    3. Current directory + default_config_name
    4. Environment variable BURN_PROGRESSION_CONFIG
    
    Args:
        config_path: Explicit path to configuration file
        component_name: Name of component (for automatic config discovery)
        default_config_name: Default config filename to search for
        
    Returns:
        Dict[str, Any]: Configuration dictionary
        
    Raises:
        FileNotFoundError: If no configuration file is found
        ConfigurationError: If configuration file is invalid YAML
        
    Examples:
        >>> config = load_config(component_name="burned_area_mapping")
        >>> config = load_config("megara_2023.yaml")
    """
    logger = get_logger('config')
    
    search_paths = []
    
    if config_path:
        search_paths.append(Path(config_path))
    
    if component_name:
        search_paths.append(REPO_ROOT / component_name / default_config_name)
        search_paths.append(Path(component_name) / default_config_name)
    
    search_paths.append(Path(default_config_name))
    
    env_config = os.environ.get(CONFIG_ENV_VAR)
    if env_config:
        search_paths.append(Path(env_config))
    
    config_file = None
    for path in search_paths:
        if path.exists():
            config_file = path
            logger.debug(f"Found configuration file: {config_file}")
            break
    
    if not config_file:
        searched_paths = [str(p) for p in search_paths]
        raise FileNotFoundError(
            f"Configuration file not found. Searched paths: {searched_paths}"
        )
    
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}")
    
    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_file}")
    
    config['_meta'] = {
        'config_file': str(config_file.absolute()),
        'component_name': component_name,
        'loaded_at': str(Path.cwd())
    }
    
    logger.info(f"Loaded configuration from: {config_file}")
    return config


def validate_config(config: Dict[str, Any], required_sections: List[str] = None) -> bool:
    """
    Validate configuration dictionary structure.
    
    Args:
        config: Configuration dictionary to validate
        required_sections: List of required top-level sections
        
    Returns:
        bool: True if configuration is valid
        
    Raises:
        ConfigurationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration must be a dictionary")
    
    if required_sections:
        missing_sections = [section for section in required_sections if section not in config]
        if missing_sections:
            raise ConfigurationError(f"Missing required configuration sections: {missing_sections}")
    
    get_logger('config').debug("Configuration validation passed")
    return True


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get nested configuration value using dot notation.
    
    Args:
        config: Configuration dictionary
        key_path: Dot-separated path to the value (e.g., 'cleaning.min_patch_pixels')
        default: Default value if key is not found or is null
        
    Returns:
        Any: Configuration value or default
        
    Examples:
        >>> kernel = get_config_value(config, 'preprocessing.kernel_size', 19)
    """
    value = config
    
    try:
        for key in key_path.split('.'):
            value = value[key]
    except (KeyError, TypeError):
        return default
    
    return default if value is None else value


def save_config(config: Dict[str, Any], output_path: Union[str, Path]) -> None:
    """
    Save configuration dictionary to YAML file, dropping private keys.
    
    Args:
        config: Configuration dictionary to save
        output_path: Output file path
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    
    config_to_save = {k: v for k, v in config.items() if not k.startswith('_')}
    
    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.dump(config_to_save, f, default_flow_style=False, sort_keys=False)
    
    get_logger('config').info(f"Configuration saved to: {output_path}")
