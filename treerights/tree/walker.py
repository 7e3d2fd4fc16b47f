"""
Tree traversal for treerights.

The walker visits every entry under a root directory, depth-first and in
name order, classifies it, and applies the decision of the rule table:
- ApplyRole: chown and chmod, each attempted and reported independently
- NoOp: nothing
- Unmatched: warning

Symlinks and special files are skipped and never matched. Only problems
with the root itself are fatal; everything else is a per-entry warning.
"""

import errno
import os
import stat
from dataclasses import asdict, dataclass
from typing import Iterator, List, Optional, Tuple

from treerights.core.constants import SEPARATOR, EntryKind, ErrorCode
from treerights.infrastructure.logger import Logger, get_logger
from treerights.rules.engine import DecisionKind, Entry, RuleMatcher, RuleTable
from treerights.rules.roles import Role
from treerights.tree.operations import OperationResult, PosixOperations


class WalkError(Exception):
    """Raised when the tree root cannot be entered."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


def _error_code_for(exc: OSError) -> ErrorCode:
    if exc.errno == errno.ENOENT:
        return ErrorCode.NOT_FOUND
    if exc.errno in (errno.EACCES, errno.EPERM):
        return ErrorCode.PERMISSION_DENIED
    return ErrorCode.INVALID_INPUT


@dataclass
class WalkStats:
    """Counters for one walk."""

    visited: int = 0
    applied: int = 0
    no_op: int = 0
    unmatched: int = 0
    skipped: int = 0
    unreadable: int = 0
    failures: int = 0

    def as_dict(self):
        return asdict(self)


class TreeWalker:
    """
    Walks a tree and normalizes ownership and modes of its entries.

    The rule table is read-only during the walk; the walker itself keeps no
    state between entries other than its statistics.
    """

    def __init__(
        self,
        table: RuleTable,
        operations: Optional[PosixOperations] = None,
        logger: Optional[Logger] = None,
        verbose: bool = False,
    ):
        """
        Initialize tree walker.

        Args:
            table: Rule table deciding each entry
            operations: chown/chmod layer
            logger: Logger for diagnostics
            verbose: Log every decision
        """
        self.matcher = RuleMatcher(table)
        self.logger = logger or get_logger()
        self.operations = operations or PosixOperations(self.logger)
        self.verbose = verbose

    def walk(self, root: str) -> WalkStats:
        """
        Walk the tree under root.

        Args:
            root: Tree root directory

        Returns:
            Walk statistics

        Raises:
            WalkError: If root is not a directory, or still cannot be read
                after its own role was applied
        """
        root_path = os.path.abspath(root)

        try:
            root_stat = os.stat(root_path)
        except OSError as e:
            raise WalkError(
                f"Cannot enter tree root {root}: {e.strerror or e}", _error_code_for(e)
            ) from e
        if not stat.S_ISDIR(root_stat.st_mode):
            raise WalkError(f"Tree root is not a directory: {root}")

        stats = WalkStats()
        with self.logger.add_context(root=root_path):
            self._handle(Entry(SEPARATOR, EntryKind.DIRECTORY, root_path), stats)

            try:
                names = self._list_directory(root_path)
            except OSError as e:
                raise WalkError(
                    f"Cannot enter tree root {root}: {e.strerror or e}", _error_code_for(e)
                ) from e

            stack: List[Tuple[str, str, Iterator[str]]] = [(root_path, "", iter(names))]
            while stack:
                dir_path, prefix, pending = stack[-1]
                name = next(pending, None)
                if name is None:
                    stack.pop()
                    continue

                child = self._visit(os.path.join(dir_path, name), prefix + name, stats)
                if child is not None:
                    stack.append(child)

            self.logger.info("Tree walk complete", **stats.as_dict())

        return stats

    def _list_directory(self, path: str) -> List[str]:
        with os.scandir(path) as it:
            return sorted(entry.name for entry in it)

    def _visit(
        self, path: str, relative: str, stats: WalkStats
    ) -> Optional[Tuple[str, str, Iterator[str]]]:
        """Handle one entry; return the stack frame for a directory to descend into."""
        try:
            st = os.lstat(path)
        except OSError as e:
            stats.skipped += 1
            self.logger.warning("Cannot inspect entry", path=relative, error=e.strerror or e)
            return None

        kind = EntryKind.from_mode(st.st_mode)
        if kind is EntryKind.SYMLINK:
            stats.skipped += 1
            self.logger.info("Skipping symlink", path=relative)
            return None
        if kind is EntryKind.OTHER:
            stats.skipped += 1
            self.logger.info("Skipping special file", path=relative)
            return None

        if kind is EntryKind.FILE:
            self._handle(Entry(relative, kind, path), stats)
            return None

        dir_relative = relative + SEPARATOR
        self._handle(Entry(dir_relative, kind, path), stats)

        # Listed after the role was applied, so a newly readable directory can be entered
        try:
            names = self._list_directory(path)
        except OSError as e:
            stats.unreadable += 1
            self.logger.warning("Cannot read directory", path=dir_relative, error=e.strerror or e)
            return None
        return (path, dir_relative, iter(names))

    def _handle(self, entry: Entry, stats: WalkStats) -> None:
        """Match one entry and act on the decision."""
        decision = self.matcher.match(entry)
        stats.visited += 1

        if decision.kind is DecisionKind.APPLY_ROLE:
            stats.applied += 1
            if self.verbose:
                self.logger.info(
                    "Applying role",
                    path=entry.relative_path,
                    role=decision.role.name,
                    rule=decision.rule.describe() if decision.rule else None,
                )
            self._apply(entry, decision.role, stats)
        elif decision.kind is DecisionKind.NO_OP:
            stats.no_op += 1
            if self.verbose:
                self.logger.info(
                    "No-op rule matched",
                    path=entry.relative_path,
                    rule=decision.rule.describe() if decision.rule else None,
                )
        else:
            stats.unmatched += 1
            self.logger.warning("No rule matched", path=entry.relative_path)

    def _apply(self, entry: Entry, role: Role, stats: WalkStats) -> None:
        results = [
            self.operations.chown(entry.path, role.user_id, role.group_id),
            self.operations.chmod(entry.path, role.mode_for(entry.is_directory)),
        ]
        for result in results:
            self._report(entry, result, stats)

    def _report(self, entry: Entry, result: OperationResult, stats: WalkStats) -> None:
        if not result.success:
            stats.failures += 1
            self.logger.warning(
                f"{result.operation} failed", path=entry.relative_path, error=result.error
            )
