"""treerights Core - Shared constants and validators.

Import specific names from submodules:
    from treerights.core.constants import EntryKind, ErrorCode
    from treerights.core.validators import ValidationError, validate_pattern
"""

# Re-export main module references for convenience
from treerights.core import constants, validators

__all__ = [
    "constants",
    "validators",
]
