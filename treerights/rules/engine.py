#!/usr/bin/env python3
"""Rule table loading and first-match-wins evaluation.

This module provides the ordered rule table for treerights:
- Rule file parsing (``<pattern> [<role>|-]`` per line)
- Error collection across the whole file before failing
- Directory/file discrimination via trailing '/'
- First-match-wins evaluation, order is the only priority

Example:
    >>> table = RuleTable.load(["secret.txt -", "*.txt web"], registry)
    >>> match(Entry("notes.txt", EntryKind.FILE), table).role.name
    'web'
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from treerights.core.constants import COMMENT_PREFIX, NO_OP_ROLE, SEPARATOR, EntryKind, ErrorCode
from treerights.core.validators import ValidationError, validate_pattern, validate_role_name
from treerights.rules.patterns import PathMatcher, PatternError, compile_pattern
from treerights.rules.roles import Role, RoleRegistry

_FIELD_SEPARATOR = re.compile(r"\s+")

@dataclass(frozen=True)
class Rule:
    """One compiled rule line.

    A rule without a role is an explicit no-op: it matches and stops
    evaluation without changing the entry.
    """

    pattern: str
    matcher: PathMatcher
    applies_to_directories: bool
    role: Optional[Role] = None
    line_number: int = 0

    @property
    def is_no_op(self) -> bool:
        return self.role is None

    def describe(self) -> str:
        suffix = SEPARATOR if self.applies_to_directories else ""
        target = self.role.name if self.role else NO_OP_ROLE
        return f"{self.pattern}{suffix} {target}"


@dataclass(frozen=True)
class RuleLineError:
    """A validation error attached to one rule line."""

    source: str
    line_number: int
    line: str
    message: str

    def __str__(self) -> str:
        return f"{self.source}:{self.line_number}: {self.message}: {self.line!r}"


@dataclass
class RuleParseResult:
    """Rules and errors accumulated while scanning a rule source."""

    rules: List[Rule] = field(default_factory=list)
    errors: List[RuleLineError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class RuleTableError(ValidationError):
    """Raised when a rule source contains one or more invalid lines."""

    def __init__(self, errors: Sequence[RuleLineError]):
        self.errors = list(errors)
        noun = "error" if len(self.errors) == 1 else "errors"
        super().__init__(f"{len(self.errors)} rule {noun}", ErrorCode.INVALID_INPUT)


def _parse_line(
    text: str, line_number: int, registry: RoleRegistry, source: str
) -> Union[Rule, RuleLineError, None]:
    """Parse one line into a Rule, a RuleLineError, or None when skipped."""
    line = text.rstrip()
    if not line or line.startswith(COMMENT_PREFIX):
        return None

    def error(message: str) -> RuleLineError:
        return RuleLineError(source, line_number, line, message)

    # Leading whitespace yields an empty first field
    fields = _FIELD_SEPARATOR.split(line)
    if not fields[0]:
        return error("empty pattern")
    if len(fields) > 2:
        return error("too many fields")

    raw_pattern = fields[0]
    who = fields[1] if len(fields) == 2 else NO_OP_ROLE

    try:
        validate_pattern(raw_pattern)
    except ValidationError as e:
        return error(str(e))

    applies_to_directories = raw_pattern.endswith(SEPARATOR)
    pattern = raw_pattern[:-1] if applies_to_directories else raw_pattern

    role = None
    if who != NO_OP_ROLE:
        try:
            validate_role_name(who)
        except ValidationError as e:
            return error(str(e))
        role = registry.get(who)
        if role is None:
            return error(f"unknown role {who!r}")
        if not role.applies_to_files and not applies_to_directories:
            return error(f"role {who!r} has no file mode and cannot apply to files")

    try:
        matcher = compile_pattern(pattern, applies_to_directories)
    except PatternError as e:
        return error(str(e))

    return Rule(
        pattern=pattern,
        matcher=matcher,
        applies_to_directories=applies_to_directories,
        role=role,
        line_number=line_number,
    )


def parse_rules(
    lines: Iterable[str], registry: RoleRegistry, source: str = "<rules>"
) -> RuleParseResult:
    """Scan every line of a rule source, collecting rules and errors.

    Scanning never stops at the first error so that all problems can be
    reported together.

    Args:
        lines: Rule source lines
        registry: Roles that rules may reference
        source: Name of the source for diagnostics

    Returns:
        Accumulated rules and errors
    """
    result = RuleParseResult()
    for line_number, text in enumerate(lines, start=1):
        parsed = _parse_line(text, line_number, registry, source)
        if isinstance(parsed, RuleLineError):
            result.errors.append(parsed)
        elif parsed is not None:
            result.rules.append(parsed)
    return result


class RuleTable:
    """Ordered, immutable sequence of rules."""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules = tuple(rules)

    @classmethod
    def load(
        cls, lines: Iterable[str], registry: RoleRegistry, source: str = "<rules>"
    ) -> "RuleTable":
        """Load a rule table, failing as a whole on any invalid line.

        Args:
            lines: Rule source lines
            registry: Roles that rules may reference
            source: Name of the source for diagnostics

        Returns:
            Rule table

        Raises:
            RuleTableError: With every line error found in the source
        """
        result = parse_rules(lines, registry, source)
        if not result.ok:
            raise RuleTableError(result.errors)
        return cls(result.rules)

    @property
    def rules(self) -> Sequence[Rule]:
        return self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


@dataclass(frozen=True)
class Entry:
    """One filesystem object seen during traversal."""

    relative_path: str
    kind: EntryKind
    path: str = ""

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


class DecisionKind(Enum):
    """Outcome of matching an entry against the rule table."""

    APPLY_ROLE = "apply"
    NO_OP = "no-op"
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class Decision:
    """Decision for one entry, with the rule that produced it."""

    kind: DecisionKind
    role: Optional[Role] = None
    rule: Optional[Rule] = None

    @classmethod
    def apply_role(cls, role: Role, rule: Optional[Rule] = None) -> "Decision":
        return cls(DecisionKind.APPLY_ROLE, role, rule)

    @classmethod
    def no_op(cls, rule: Optional[Rule] = None) -> "Decision":
        return cls(DecisionKind.NO_OP, None, rule)

    @classmethod
    def unmatched(cls) -> "Decision":
        return cls(DecisionKind.UNMATCHED)


def match(entry: Entry, table: RuleTable) -> Decision:
    """Find the first rule applying to an entry.

    Rules whose directory flag disagrees with the entry kind are skipped,
    as are rules whose pattern does not match. Rules after the first match
    are never consulted.

    Args:
        entry: Entry to evaluate
        table: Rule table

    Returns:
        ApplyRole, NoOp or Unmatched decision
    """
    for rule in table:
        if rule.applies_to_directories != entry.is_directory:
            continue
        if not rule.matcher.matches(entry.relative_path):
            continue
        if rule.role is None:
            return Decision.no_op(rule)
        return Decision.apply_role(rule.role, rule)

    return Decision.unmatched()


class RuleMatcher:
    """Binds a rule table for repeated matching during a walk."""

    def __init__(self, table: RuleTable):
        self._table = table

    @property
    def table(self) -> RuleTable:
        return self._table

    def match(self, entry: Entry) -> Decision:
        return match(entry, self._table)
