"""
treerights Foundation: Input Validators.

This module provides input validation functions for configuration, role
names and specifications, and rule patterns. Validators raise
ValidationError on failure; they never touch the filesystem or the user
database.
"""
import re
from typing import Any, Dict, Optional

from treerights.core.constants import VALID_LOG_LEVELS, ConfigKey, ErrorCode


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.error_code = error_code


# Lowercase letters, digits, '-' and '_', starting with a letter or underscore
_ROLE_NAME_RE = re.compile(r"^[a-z_][a-z0-9_-]*$")

# user[:group],MODES where MODES is FFF, DDD/FFF, DDD/ or /FFF
_ROLE_SPEC_RE = re.compile(
    r"^(?P<user>[^\s:,/]+)(?::(?P<group>[^\s:,/]+))?,"
    r"(?:(?P<dir_mode>[0-7]{3,4})?/(?P<file_mode>[0-7]{3,4})?|(?P<mode>[0-7]{3,4}))$"
)

# One path component: exactly '**', or a run without unescaped '/' and without '**'
_COMPONENT = r"(?:\*\*|(?:[^/*\\]|\\.|\*(?!\*))+)"
_PATTERN_RE = re.compile(rf"^(?:/?{_COMPONENT}(?:/{_COMPONENT})*/?|/)$", re.DOTALL)


def validate_role_name(name: str) -> bool:
    """Validate role name.

    Args:
        name: Role name to validate

    Returns:
        True if valid

    Raises:
        ValidationError: If name is invalid
    """
    if not name:
        raise ValidationError("Role name cannot be empty")

    if not isinstance(name, str):
        raise ValidationError(f"Role name must be string, got {type(name)}")

    if not _ROLE_NAME_RE.match(name):
        raise ValidationError(
            f"Invalid role name: {name!r}: must start with a lowercase letter or underscore "
            "and contain only lowercase letters, digits, underscore, and hyphen"
        )

    return True


def validate_role_spec(spec: str) -> Dict[str, Optional[str]]:
    """Validate a role specification and split it into its fields.

    The accepted grammar is ``user[:group],MODES`` where each mode is 3-4
    octal digits and MODES is one of ``FFF`` (file mode), ``DDD/FFF``,
    ``DDD/`` (directory only) or ``/FFF``.

    Args:
        spec: Role specification string

    Returns:
        Dict with keys ``user``, ``group``, ``dir_mode`` and ``file_mode``;
        ``group`` and at most one of the modes may be None

    Raises:
        ValidationError: If spec is malformed
    """
    if not isinstance(spec, str):
        raise ValidationError(f"Role spec must be string, got {type(spec)}")

    match = _ROLE_SPEC_RE.match(spec.strip())
    if not match:
        raise ValidationError(
            f"Invalid role spec: {spec!r}. Expected user[:group],[dirmode][/filemode]"
        )

    fields = match.groupdict()
    file_mode = fields["mode"] or fields["file_mode"]
    if file_mode is None and fields["dir_mode"] is None:
        raise ValidationError(f"Role spec needs at least one mode: {spec!r}")

    return {
        "user": fields["user"],
        "group": fields["group"],
        "dir_mode": fields["dir_mode"],
        "file_mode": file_mode,
    }


def validate_permissions(mode: str) -> int:
    """Validate and convert an octal permission mode.

    Args:
        mode: Permission mode as 3-4 octal digits

    Returns:
        Numeric mode

    Raises:
        ValidationError: If mode is invalid
    """
    if not re.match(r"^[0-7]{3,4}$", str(mode)):
        raise ValidationError(f"Invalid permission mode (must be 3-4 octal digits): {mode}")

    return int(mode, 8)


def validate_pattern(pattern: str) -> bool:
    """Validate rule pattern syntax.

    After an optional leading '/', a pattern is a '/'-separated sequence of
    components, each either exactly '**' or a non-empty run of characters
    with no unescaped '/' and no '*' next to another '*'. An optional
    trailing '/' is allowed, and the bare '/' designates the tree root.

    Args:
        pattern: Pattern to validate

    Returns:
        True if valid

    Raises:
        ValidationError: If pattern is invalid
    """
    if not pattern:
        raise ValidationError("Pattern cannot be empty")

    if not isinstance(pattern, str):
        raise ValidationError(f"Pattern must be string, got {type(pattern)}")

    if "\0" in pattern:
        raise ValidationError("Invalid pattern: contains null bytes")

    if not _PATTERN_RE.match(pattern):
        raise ValidationError(f"Invalid pattern syntax: {pattern}")

    return True


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate treerights configuration structure.

    Only the structure is checked here; role specs are parsed and resolved
    when the role registry is built.

    Args:
        config: Merged configuration dictionary

    Returns:
        True if valid

    Raises:
        ValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValidationError("Configuration must be a dictionary")

    section = config.get(ConfigKey.ROOT, {})
    if not isinstance(section, dict):
        raise ValidationError(f"'{ConfigKey.ROOT}' section must be a dictionary")

    # Validate roles
    roles = section.get(ConfigKey.ROLES) or {}
    if not isinstance(roles, dict):
        raise ValidationError("Roles must be a mapping of role name to spec")

    for name, spec in roles.items():
        validate_role_name(name)
        if not isinstance(spec, str):
            raise ValidationError(f"Spec for role {name!r} must be string, got {type(spec)}")

    # Validate rules source
    rules_file = section.get(ConfigKey.RULES_FILE)
    if rules_file is not None and not isinstance(rules_file, str):
        raise ValidationError(f"Rules file must be string: {rules_file}")

    for flag in (ConfigKey.DRY_RUN, ConfigKey.VERBOSE):
        if flag in section and not isinstance(section[flag], bool):
            raise ValidationError(f"'{flag}' must be boolean: {section[flag]}")

    # Validate logging
    logging_config = section.get(ConfigKey.LOGGING) or {}
    if not isinstance(logging_config, dict):
        raise ValidationError("Logging configuration must be a dictionary")

    level = logging_config.get(ConfigKey.LOG_LEVEL)
    if level is not None and str(level).upper() not in VALID_LOG_LEVELS:
        raise ValidationError(
            f"Invalid log level: {level}. Must be one of {list(VALID_LOG_LEVELS)}"
        )

    return True
