"""Configuration package for the academic standing system."""

from standing.config.app_config import (
    AppConfig,
    EligibilityConfig,
    PathsConfig,
    clear_config_cache,
    get_data_dir,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "EligibilityConfig",
    "PathsConfig",
    "clear_config_cache",
    "get_data_dir",
    "load_app_config",
]
