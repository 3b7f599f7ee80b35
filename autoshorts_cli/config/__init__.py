"""CLI configuration."""

from autoshorts_cli.config.settings import Settings, get_config_path, load_user_config, save_user_config

__all__ = ["Settings", "get_config_path", "load_user_config", "save_user_config"]
