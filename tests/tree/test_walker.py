"""Tests for the tree walker."""
import os
import stat
from unittest.mock import MagicMock, call

import pytest

from treerights.core.constants import ErrorCode
from treerights.rules.engine import RuleTable
from treerights.tree.operations import OperationResult, PosixOperations
from treerights.tree.walker import TreeWalker, WalkError, WalkStats


@pytest.fixture
def operations():
    """Operations double that records calls and always succeeds."""
    ops = MagicMock(spec=PosixOperations)
    ops.chown.side_effect = lambda path, uid, gid: OperationResult("chown", path)
    ops.chmod.side_effect = lambda path, mode: OperationResult("chmod", path)
    return ops


def mode_of(path):
    return stat.S_IMODE(os.lstat(path).st_mode)


def chmod_targets(operations, root):
    return [os.path.relpath(c.args[0], root) for c in operations.chmod.call_args_list]


class TestWalkOrder:
    """Traversal order and entry classification."""

    def test_depth_first_in_name_order(self, registry, source_tree, operations, logger):
        table = RuleTable.load(["*/ conf", "* web"], registry)

        TreeWalker(table, operations, logger).walk(str(source_tree))

        assert chmod_targets(operations, source_tree) == [
            ".",
            "README.md",
            "bin",
            os.path.join("bin", "run.sh"),
            "notes.txt",
            "secret.txt",
            "src",
            os.path.join("src", "app.py"),
            os.path.join("src", "build"),
            os.path.join("src", "build", "out.o"),
        ]

    def test_stats(self, registry, source_tree, operations, logger):
        table = RuleTable.load(["secret.txt -", "*/ conf", "* web"], registry)

        stats = TreeWalker(table, operations, logger).walk(str(source_tree))

        assert stats == WalkStats(visited=10, applied=9, no_op=1, unmatched=0, skipped=1)

    def test_root_matched_as_slash(self, registry, source_tree, operations, logger):
        table = RuleTable.load(["/ dirs", "*/ conf", "* web"], registry)

        TreeWalker(table, operations, logger).walk(str(source_tree))

        assert operations.chmod.call_args_list[0] == call(str(source_tree), 0o2775)
        assert operations.chown.call_args_list[0] == call(str(source_tree), 1000, 50)
        assert call(str(source_tree / "bin"), 0o750) in operations.chmod.call_args_list

    def test_files_use_file_mode(self, registry, source_tree, operations, logger):
        table = RuleTable.load(["*/ conf", "* conf"], registry)

        TreeWalker(table, operations, logger).walk(str(source_tree))

        assert call(str(source_tree / "notes.txt"), 0o640) in operations.chmod.call_args_list
        assert call(str(source_tree / "src"), 0o750) in operations.chmod.call_args_list

    def test_symlink_skipped(self, registry, source_tree, operations, logger, log_stream):
        table = RuleTable.load([], registry)

        stats = TreeWalker(table, operations, logger).walk(str(source_tree))

        assert stats.skipped == 1
        assert stats.unmatched == 10
        output = log_stream.getvalue()
        assert "Skipping symlink" in output
        for line in output.splitlines():
            if "No rule matched" in line:
                assert "path=link" not in line
        operations.chown.assert_not_called()

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="requires mkfifo")
    def test_special_file_skipped(self, registry, source_tree, operations, logger, log_stream):
        os.mkfifo(source_tree / "pipe")
        table = RuleTable.load(["*/ conf", "* web"], registry)

        stats = TreeWalker(table, operations, logger).walk(str(source_tree))

        assert stats.skipped == 2
        assert "Skipping special file" in log_stream.getvalue()
        assert str(source_tree / "pipe") not in [c.args[0] for c in operations.chmod.call_args_list]

    def test_no_op_directory_still_descended(self, registry, source_tree, operations, logger):
        table = RuleTable.load(["src/ -", "*/ conf", "* web"], registry)

        TreeWalker(table, operations, logger).walk(str(source_tree))

        targets = chmod_targets(operations, source_tree)
        assert "src" not in targets
        assert os.path.join("src", "app.py") in targets


class TestWalkDiagnostics:
    """Warnings and verbose output."""

    def test_unmatched_entries_warned(self, registry, source_tree, operations, logger, log_stream):
        table = RuleTable.load(["* web"], registry)

        stats = TreeWalker(table, operations, logger).walk(str(source_tree))

        assert stats.unmatched == 4
        assert "No rule matched" in log_stream.getvalue()
        assert "path=src/build/" in log_stream.getvalue()

    def test_verbose_logs_decisions(self, registry, source_tree, operations, logger, log_stream):
        table = RuleTable.load(["secret.txt -", "*/ conf", "* web"], registry)

        TreeWalker(table, operations, logger, verbose=True).walk(str(source_tree))

        output = log_stream.getvalue()
        assert "Applying role" in output
        assert "role=web" in output
        assert "No-op rule matched" in output
        assert "rule=secret.txt -" in output

    def test_quiet_by_default(self, registry, source_tree, operations, logger, log_stream):
        table = RuleTable.load(["*/ conf", "* web"], registry)

        TreeWalker(table, operations, logger).walk(str(source_tree))

        assert "Applying role" not in log_stream.getvalue()
        assert "Tree walk complete" in log_stream.getvalue()

    def test_chown_failure_does_not_stop_chmod(
        self, registry, source_tree, operations, logger, log_stream
    ):
        operations.chown.side_effect = lambda path, uid, gid: OperationResult(
            "chown", path, success=False, error="Operation not permitted"
        )
        table = RuleTable.load(["secret.txt web"], registry)

        stats = TreeWalker(table, operations, logger).walk(str(source_tree))

        assert stats.failures == 1
        operations.chmod.assert_called_once_with(str(source_tree / "secret.txt"), 0o644)
        output = log_stream.getvalue()
        assert "chown failed" in output
        assert "error=Operation not permitted" in output

    @pytest.mark.skipif(os.geteuid() == 0, reason="root can read any directory")
    def test_unreadable_directory_is_not_fatal(
        self, registry, source_tree, operations, logger, log_stream
    ):
        build = source_tree / "src" / "build"
        build.chmod(0)
        try:
            table = RuleTable.load(["*/ conf", "* web"], registry)
            stats = TreeWalker(table, operations, logger).walk(str(source_tree))
        finally:
            build.chmod(0o755)

        assert "Cannot read directory" in log_stream.getvalue()
        assert stats.visited == 9
        assert stats.unreadable == 1


class TestWalkRoot:
    """Errors about the root are fatal."""

    def test_missing_root(self, registry, temp_dir, operations, logger):
        table = RuleTable.load(["* web"], registry)

        with pytest.raises(WalkError) as exc_info:
            TreeWalker(table, operations, logger).walk(str(temp_dir / "missing"))

        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_root_is_a_file(self, registry, source_tree, operations, logger):
        table = RuleTable.load(["* web"], registry)

        with pytest.raises(WalkError) as exc_info:
            TreeWalker(table, operations, logger).walk(str(source_tree / "notes.txt"))

        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT
        assert "not a directory" in str(exc_info.value)
        operations.chmod.assert_not_called()

    @pytest.mark.skipif(os.geteuid() == 0, reason="root can read any directory")
    def test_unreadable_root_opened_by_its_role(self, self_registry, source_tree, logger):
        source_tree.chmod(0)
        try:
            table = RuleTable.load(["/ shared", "*/ shared", "* shared"], self_registry)
            stats = TreeWalker(table, PosixOperations(logger), logger).walk(str(source_tree))
        finally:
            source_tree.chmod(0o755)

        assert stats.visited == 10
        assert stats.unreadable == 0

    @pytest.mark.skipif(os.geteuid() == 0, reason="root can read any directory")
    def test_unreadable_root_left_alone(self, registry, source_tree, operations, logger):
        source_tree.chmod(0)
        try:
            table = RuleTable.load(["/ -", "* web"], registry)
            with pytest.raises(WalkError) as exc_info:
                TreeWalker(table, operations, logger).walk(str(source_tree))
        finally:
            source_tree.chmod(0o755)

        assert exc_info.value.error_code == ErrorCode.PERMISSION_DENIED


class TestWalkFilesystem:
    """Walks with real chown/chmod on entries owned by the current user."""

    def test_modes_applied(self, self_registry, source_tree, logger):
        table = RuleTable.load(["*/ shared", "secret.txt private", "* shared"], self_registry)
        walker = TreeWalker(table, PosixOperations(logger), logger)

        stats = walker.walk(str(source_tree))

        assert stats.failures == 0
        assert mode_of(source_tree) == 0o755
        assert mode_of(source_tree / "secret.txt") == 0o600
        assert mode_of(source_tree / "README.md") == 0o644
        assert mode_of(source_tree / "src" / "build") == 0o755
        assert mode_of(source_tree / "src" / "build" / "out.o") == 0o644

    def test_dry_run_changes_nothing(self, self_registry, source_tree, logger, log_stream):
        (source_tree / "notes.txt").chmod(0o600)
        table = RuleTable.load(["*/ shared", "* shared"], self_registry)
        walker = TreeWalker(table, PosixOperations(logger, dry_run=True), logger)

        stats = walker.walk(str(source_tree))

        assert stats.applied == 10
        assert mode_of(source_tree / "notes.txt") == 0o600
        assert "Would change mode" in log_stream.getvalue()

    def test_symlink_target_untouched(self, self_registry, source_tree, logger):
        (source_tree / "README.md").chmod(0o600)
        table = RuleTable.load(["README.md -", "*/ shared", "* shared"], self_registry)

        TreeWalker(table, PosixOperations(logger), logger).walk(str(source_tree))

        assert mode_of(source_tree / "README.md") == 0o600
