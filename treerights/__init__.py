"""treerights - assign ownership and modes to a directory tree from path rules.

An ordered list of gitignore-style rules maps each entry of a tree to a
role (user, group, file mode, directory mode); the first matching rule
wins.
"""

from treerights.core.constants import TREERIGHTS_VERSION as __version__
from treerights.rules import Decision, DecisionKind, Entry, Role, RoleRegistry, RuleTable, match
from treerights.tree import TreeWalker

__all__ = [
    "__version__",
    "Decision",
    "DecisionKind",
    "Entry",
    "Role",
    "RoleRegistry",
    "RuleTable",
    "TreeWalker",
    "match",
]
