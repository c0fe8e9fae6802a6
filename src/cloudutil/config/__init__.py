"""Configuration for the error extractor."""

from cloudutil.config.config import (
    DEFAULT_CONFIG_FILE,
    ExtractorConfig,
    get_config,
    load_config,
    reset_config,
    set_config,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ExtractorConfig",
    "get_config",
    "load_config",
    "reset_config",
    "set_config",
]
