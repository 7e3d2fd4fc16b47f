"""
Ownership and permission operations for treerights.

Each operation is attempted exactly once and reports its own outcome, so a
failed chown never prevents the chmod of the same entry (and vice versa).
Failures are returned as OperationResult values, not raised.
"""

import os
from dataclasses import dataclass
from typing import Optional

from treerights.infrastructure.logger import Logger, get_logger


@dataclass
class OperationResult:
    """Outcome of one filesystem operation."""

    operation: str
    path: str
    success: bool = True
    error: Optional[str] = None


class PosixOperations:
    """
    chown/chmod on POSIX filesystems.

    In dry-run mode operations are logged and reported as successful
    without touching the filesystem.
    """

    def __init__(self, logger: Optional[Logger] = None, dry_run: bool = False):
        """
        Initialize operations layer.

        Args:
            logger: Logger for dry-run and debug output
            dry_run: Only report what would be changed
        """
        self.logger = logger or get_logger()
        self.dry_run = dry_run

    def chown(self, path: str, uid: int, gid: int) -> OperationResult:
        """
        Change ownership of a path without following symlinks.

        Args:
            path: Filesystem path
            uid: New user ID
            gid: New group ID

        Returns:
            Operation outcome
        """
        if self.dry_run:
            self.logger.info("Would change ownership", path=path, uid=uid, gid=gid)
            return OperationResult("chown", path)

        try:
            os.chown(path, uid, gid, follow_symlinks=False)
        except OSError as e:
            return OperationResult("chown", path, success=False, error=e.strerror or str(e))

        self.logger.debug(f"Changed ownership: {path} -> uid={uid}, gid={gid}")
        return OperationResult("chown", path)

    def chmod(self, path: str, mode: int) -> OperationResult:
        """
        Change permission bits of a path.

        Args:
            path: Filesystem path
            mode: New permission mode

        Returns:
            Operation outcome
        """
        if self.dry_run:
            self.logger.info("Would change mode", path=path, mode=f"{mode:04o}")
            return OperationResult("chmod", path)

        try:
            os.chmod(path, mode)
        except OSError as e:
            return OperationResult("chmod", path, success=False, error=e.strerror or str(e))

        self.logger.debug(f"Changed permissions: {path} -> {mode:04o}")
        return OperationResult("chmod", path)
