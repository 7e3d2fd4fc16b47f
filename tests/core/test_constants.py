"""Tests for constants and type definitions."""
import os
import stat

import pytest

from treerights.core.constants import (
    DEFAULT_CONFIG,
    TREERIGHTS_VERSION,
    VALID_LOG_LEVELS,
    ConfigKey,
    EntryKind,
    ErrorCode,
)


class TestErrorCodes:
    """Test error code definitions."""

    def test_error_codes_unique(self):
        """All error codes must have unique values."""
        codes = [e.value for e in ErrorCode]
        assert len(codes) == len(set(codes))

    def test_success_is_zero(self):
        """SUCCESS code must be 0 for system compatibility."""
        assert ErrorCode.SUCCESS == 0

    def test_error_codes_in_range(self):
        """Error codes double as exit statuses."""
        for code in ErrorCode:
            assert 0 <= code.value <= 9


class TestEntryKind:
    """Test lstat() mode classification."""

    @pytest.mark.parametrize(
        "mode,kind",
        [
            (stat.S_IFREG | 0o644, EntryKind.FILE),
            (stat.S_IFDIR | 0o755, EntryKind.DIRECTORY),
            (stat.S_IFLNK | 0o777, EntryKind.SYMLINK),
            (stat.S_IFIFO | 0o600, EntryKind.OTHER),
            (stat.S_IFSOCK | 0o600, EntryKind.OTHER),
            (stat.S_IFCHR | 0o600, EntryKind.OTHER),
        ],
    )
    def test_from_mode(self, mode, kind):
        assert EntryKind.from_mode(mode) is kind

    def test_from_lstat(self, temp_dir):
        """Symlinks are classified from lstat, not their target."""
        target = temp_dir / "target"
        target.write_text("x")
        link = temp_dir / "link"
        link.symlink_to(target)

        assert EntryKind.from_mode(os.lstat(link).st_mode) is EntryKind.SYMLINK
        assert EntryKind.from_mode(os.lstat(target).st_mode) is EntryKind.FILE


class TestDefaults:
    """Test default configuration."""

    def test_version_format(self):
        assert len(TREERIGHTS_VERSION.split(".")) == 3

    def test_default_config_shape(self):
        section = DEFAULT_CONFIG[ConfigKey.ROOT]

        assert section[ConfigKey.ROLES] == {}
        assert section[ConfigKey.RULES_FILE] == "-"
        assert section[ConfigKey.DRY_RUN] is False
        assert section[ConfigKey.LOGGING][ConfigKey.LOG_LEVEL] in VALID_LOG_LEVELS
