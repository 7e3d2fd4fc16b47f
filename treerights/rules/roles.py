#!/usr/bin/env python3
"""Roles: named owner/group/mode bundles referenced by rules.

A role is declared as ``name = user[:group],MODES`` and resolved once,
before any traversal, into numeric ids and modes:

    >>> registry = RoleRegistry.from_mapping({"web": "www-data,644"})
    >>> role = registry.get("web")
    >>> oct(role.file_mode), oct(role.dir_mode)
    ('0o644', '0o755')
"""

import grp
import pwd
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from treerights.core.constants import ErrorCode
from treerights.core.validators import (
    ValidationError,
    validate_permissions,
    validate_role_name,
    validate_role_spec,
)


class RoleError(ValidationError):
    """Raised when a role cannot be resolved or registered."""


class SystemIdentityResolver:
    """Resolve user and group names through the system user database."""

    def user_id(self, name: str) -> int:
        """Return the uid for a user name (KeyError if unknown)."""
        return pwd.getpwnam(name).pw_uid

    def group_id(self, name: str) -> int:
        """Return the gid for a group name (KeyError if unknown)."""
        return grp.getgrnam(name).gr_gid


def derive_dir_mode(file_mode: int) -> int:
    """Derive a directory mode from a file mode.

    Every read bit set in the file mode also sets the matching execute bit,
    so a directory the role can read stays traversable. Other bits are kept.

    Args:
        file_mode: File permission bits

    Returns:
        Directory permission bits
    """
    return file_mode | ((file_mode & 0o444) >> 2)


@dataclass(frozen=True)
class Role:
    """A resolved role."""

    name: str
    user: str
    user_id: int
    group: str
    group_id: int
    dir_mode: int
    file_mode: Optional[int] = None

    @property
    def applies_to_files(self) -> bool:
        return self.file_mode is not None

    def mode_for(self, is_directory: bool) -> Optional[int]:
        """Return the mode to apply to a directory or to a file."""
        return self.dir_mode if is_directory else self.file_mode

    def describe(self) -> str:
        file_mode = f"{self.file_mode:04o}" if self.file_mode is not None else "-"
        return f"{self.user}:{self.group} dir={self.dir_mode:04o} file={file_mode}"


def parse_role(name: str, spec: str, resolver=None) -> Role:
    """Parse and resolve one role declaration.

    Args:
        name: Role name (lowercase letters, digits, '-', '_')
        spec: Role spec ``user[:group],MODES``
        resolver: Identity resolver, SystemIdentityResolver if None

    Returns:
        Resolved role

    Raises:
        ValidationError: If name or spec is malformed
        RoleError: If the user or group does not exist
    """
    validate_role_name(name)
    try:
        fields = validate_role_spec(spec)
    except ValidationError as e:
        raise ValidationError(f"Role {name!r}: {e}") from e

    resolver = resolver or SystemIdentityResolver()
    user = fields["user"]
    group = fields["group"] or user

    try:
        user_id = resolver.user_id(user)
    except KeyError:
        raise RoleError(f"Role {name!r}: unknown user {user!r}", ErrorCode.NOT_FOUND)

    try:
        group_id = resolver.group_id(group)
    except KeyError:
        raise RoleError(f"Role {name!r}: unknown group {group!r}", ErrorCode.NOT_FOUND)

    file_mode = validate_permissions(fields["file_mode"]) if fields["file_mode"] else None
    if fields["dir_mode"]:
        dir_mode = validate_permissions(fields["dir_mode"])
    else:
        dir_mode = derive_dir_mode(file_mode)

    return Role(
        name=name,
        user=user,
        user_id=user_id,
        group=group,
        group_id=group_id,
        dir_mode=dir_mode,
        file_mode=file_mode,
    )


class RoleRegistry:
    """Immutable set of roles, keyed by name in declaration order."""

    def __init__(self, roles: Iterable[Role] = ()):
        """Initialize registry.

        Args:
            roles: Resolved roles

        Raises:
            RoleError: If two roles share a name
        """
        self._roles: Dict[str, Role] = {}
        for role in roles:
            if role.name in self._roles:
                raise RoleError(f"Duplicate role: {role.name!r}")
            self._roles[role.name] = role

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str], resolver=None) -> "RoleRegistry":
        """Build a registry from ``name -> spec`` pairs.

        Ids are resolved eagerly; the first bad declaration aborts.
        """
        resolver = resolver or SystemIdentityResolver()
        return cls(parse_role(name, spec, resolver) for name, spec in mapping.items())

    def get(self, name: str) -> Optional[Role]:
        return self._roles.get(name)

    def names(self) -> List[str]:
        return list(self._roles)

    def __contains__(self, name: object) -> bool:
        return name in self._roles

    def __iter__(self) -> Iterator[Role]:
        return iter(self._roles.values())

    def __len__(self) -> int:
        return len(self._roles)
