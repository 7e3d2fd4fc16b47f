"""
treerights Foundation: Constants

This module provides system-wide constants, error codes and entry kinds.
"""
import stat
from enum import Enum, IntEnum

# Version information
TREERIGHTS_VERSION = "1.0.0"


# Error codes (0-9 range, used as process exit status)
class ErrorCode(IntEnum):
    """Standardized error codes for treerights operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad role spec, rule file, configuration
    NOT_FOUND = 2  # File, user or group doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    INTERNAL_ERROR = 6  # Bug in treerights


# Path separator used in relative paths and patterns
SEPARATOR = "/"

# Rule file markers
COMMENT_PREFIX = "#"
NO_OP_ROLE = "-"
STDIN_SOURCE = "-"


class EntryKind(Enum):
    """Filesystem object classification used by the tree walker."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"

    @classmethod
    def from_mode(cls, mode: int) -> "EntryKind":
        """Determine entry kind from an lstat() mode."""
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        elif stat.S_ISDIR(mode):
            return cls.DIRECTORY
        elif stat.S_ISREG(mode):
            return cls.FILE
        else:
            return cls.OTHER


# Configuration keys
class ConfigKey:
    """Configuration key constants."""

    # Top-level section
    ROOT = "treerights"

    # Keys inside the section
    ROLES = "roles"
    RULES_FILE = "rules_file"
    DRY_RUN = "dry_run"
    VERBOSE = "verbose"
    LOGGING = "logging"

    # Logging configuration
    LOG_LEVEL = "level"
    LOG_FILE = "file"


VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

SYSTEM_CONFIG_PATH = "/etc/treerights/config.yaml"

# Default configuration values
DEFAULT_CONFIG = {
    ConfigKey.ROOT: {
        ConfigKey.ROLES: {},
        ConfigKey.RULES_FILE: STDIN_SOURCE,
        ConfigKey.DRY_RUN: False,
        ConfigKey.VERBOSE: False,
        ConfigKey.LOGGING: {
            ConfigKey.LOG_LEVEL: "INFO",
            ConfigKey.LOG_FILE: None,
        },
    }
}
