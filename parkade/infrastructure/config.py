# File: parkade/infrastructure/config.py
"""
Configuration and logging setup for the Parkade engine

1. load_config - Reads a FacilityConfig from a YAML file
2. setup_logging - Configures the standard logging module

Lookup order for the configuration file:
- the explicit path argument
- the PARKADE_CONFIG environment variable
- built-in defaults (3 floors x 5/5/2/2 spots, fixed fine scheme)
"""

from typing import Optional, Union, Dict, Any
from pathlib import Path
import logging
import os
import sys

import yaml
from pydantic import ValidationError

from ..application.dtos import FacilityConfig

CONFIG_ENV_VAR = "PARKADE_CONFIG"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Configuration file exists but cannot be used"""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


def _resolve_path(path: Optional[Union[str, Path]]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value)
    return None


def parse_config(data: Optional[Dict[str, Any]], source: Optional[Path] = None) -> FacilityConfig:
    """
    Validate a mapping into a FacilityConfig
    Raises: ConfigurationError when the mapping is not a valid configuration
    """
    if data is None:
        return FacilityConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}", source
        )
    try:
        return FacilityConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid facility configuration: {e}", source) from e


def load_config(path: Optional[Union[str, Path]] = None) -> FacilityConfig:
    """
    Load facility configuration from YAML

    A missing file falls back to defaults; an unreadable, malformed or
    invalid document raises ConfigurationError.
    """
    config_path = _resolve_path(path)
    if config_path is None:
        logger.info("No configuration file given, using defaults")
        return FacilityConfig()

    if not config_path.exists():
        logger.warning(f"Configuration file {config_path} not found, using defaults")
        return FacilityConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed YAML in {config_path}: {e}", config_path) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {config_path}: {e}", config_path) from e

    config = parse_config(data, config_path)
    logger.info(f"Loaded configuration from {config_path}")
    return config


def dump_config(config: FacilityConfig, path: Union[str, Path]) -> Path:
    """Write a configuration as YAML (rates and fines as plain numbers)"""
    path = Path(path)
    data = config.model_dump(mode='json')
    data['base_rates'] = {k: float(v) for k, v in data['base_rates'].items()}
    data['overstay_fine'] = float(data['overstay_fine'])
    data['overstay_hourly_fine'] = float(data['overstay_hourly_fine'])
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, sort_keys=False)
    return path


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None
) -> logging.Logger:
    """Setup application logging configuration"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )
    return logging.getLogger("parkade")
