"""Configuration management components."""

from .config_manager import ConfigManager, DatabaseConfig
from .validation_config import ValidationConfig
from .processing_defaults import ValidationDefaults

__all__ = ['ConfigManager', 'DatabaseConfig', 'ValidationConfig', 'ValidationDefaults']
