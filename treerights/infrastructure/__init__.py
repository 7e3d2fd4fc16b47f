"""treerights Infrastructure Layer.

This layer provides core services used by higher layers:
- ConfigManager: Hierarchical YAML/environment/CLI configuration
- Logger: Structured diagnostics logging
"""

from .config_manager import ConfigError
from .config_manager import ConfigManager as Config
from .config_manager import ConfigSource
from .logger import Logger, LogLevel, get_logger, set_global_logger

__all__ = [
    # Logger exports
    "Logger",
    "LogLevel",
    "get_logger",
    "set_global_logger",
    # ConfigManager exports
    "ConfigSource",
    "ConfigError",
    "Config",
]
