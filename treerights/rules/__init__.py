"""treerights Rules System.

This module provides the pattern-matching engine:
- compile_pattern / PathMatcher: gitignore-style pattern compilation
- Role / RoleRegistry: named owner, group and mode bundles
- RuleTable / match: ordered rules with first-match-wins evaluation

Rules decide which role, if any, applies to each entry of a tree based on
its path relative to the tree root.
"""

from .engine import (
    Decision,
    DecisionKind,
    Entry,
    Rule,
    RuleLineError,
    RuleMatcher,
    RuleParseResult,
    RuleTable,
    RuleTableError,
    match,
    parse_rules,
)
from .patterns import PathMatcher, PatternError, compile_pattern
from .roles import Role, RoleError, RoleRegistry, SystemIdentityResolver, derive_dir_mode, parse_role

__all__ = [
    # Pattern compilation
    "PathMatcher",
    "PatternError",
    "compile_pattern",
    # Roles
    "Role",
    "RoleError",
    "RoleRegistry",
    "SystemIdentityResolver",
    "derive_dir_mode",
    "parse_role",
    # Rule table
    "Rule",
    "RuleLineError",
    "RuleParseResult",
    "RuleTable",
    "RuleTableError",
    "parse_rules",
    # Matching
    "Entry",
    "Decision",
    "DecisionKind",
    "RuleMatcher",
    "match",
]
