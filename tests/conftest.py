"""Shared pytest fixtures for treerights tests."""
import io
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator

import pytest
import yaml

from treerights.infrastructure.logger import Logger
from treerights.rules.roles import RoleRegistry


class FakeIdentityResolver:
    """In-memory user/group database."""

    def __init__(self, users: Dict[str, int], groups: Dict[str, int]):
        self.users = users
        self.groups = groups

    def user_id(self, name: str) -> int:
        return self.users[name]

    def group_id(self, name: str) -> int:
        return self.groups[name]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def resolver() -> FakeIdentityResolver:
    """Resolver knowing a few system-like accounts and the current user."""
    return FakeIdentityResolver(
        users={"root": 0, "www-data": 33, "deploy": 1000, "me": os.getuid()},
        groups={"root": 0, "www-data": 33, "deploy": 1000, "staff": 50, "me": os.getgid()},
    )


@pytest.fixture
def registry(resolver) -> RoleRegistry:
    """Registry with a file role, a split-mode role and a directory-only role."""
    return RoleRegistry.from_mapping(
        {
            "web": "www-data,644",
            "conf": "root:www-data,750/640",
            "dirs": "deploy:staff,2775/",
        },
        resolver,
    )


@pytest.fixture
def self_registry(resolver) -> RoleRegistry:
    """Registry whose roles belong to the current user, so chown succeeds unprivileged."""
    return RoleRegistry.from_mapping(
        {
            "private": "me,600",
            "shared": "me,755/644",
        },
        resolver,
    )


@pytest.fixture
def source_tree(temp_dir: Path) -> Path:
    """Create a project tree with files, directories and a symlink."""
    root = temp_dir / "project"
    root.mkdir()

    (root / "README.md").write_text("# Project")
    (root / "secret.txt").write_text("s3cr3t")
    (root / "notes.txt").write_text("notes")

    (root / "bin").mkdir()
    (root / "bin" / "run.sh").write_text("#!/bin/sh\necho run\n")

    (root / "src").mkdir()
    (root / "src" / "app.py").write_text("print('app')")
    (root / "src" / "build").mkdir()
    (root / "src" / "build" / "out.o").write_text("binary")

    (root / "link").symlink_to(root / "README.md")

    return root


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> Logger:
    """Logger writing plain messages to an in-memory stream."""
    return Logger("treerights.test", level="DEBUG", stream=log_stream)


@pytest.fixture
def sample_config() -> Dict[str, Any]:
    """Provide a sample treerights configuration."""
    return {
        "treerights": {
            "roles": {
                "web": "www-data,644",
                "conf": "root:www-data,750/640",
            },
            "rules_file": "/etc/treerights/deploy.rules",
            "logging": {
                "level": "DEBUG",
                "file": None,
            },
        }
    }


@pytest.fixture
def config_file(temp_dir: Path, sample_config: Dict[str, Any]) -> Path:
    """Create a configuration file."""
    config_path = temp_dir / "treerights.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config, f)
    return config_path


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep TREERIGHTS_* variables of the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("TREERIGHTS_"):
            monkeypatch.delenv(key, raising=False)
    yield
