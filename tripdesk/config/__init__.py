"""Configuration module."""

from tripdesk.config.loader import get_config_path, load_config, save_config
from tripdesk.config.schema import Config

__all__ = ["Config", "get_config_path", "load_config", "save_config"]
