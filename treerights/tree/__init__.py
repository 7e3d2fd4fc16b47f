"""treerights tree traversal.

- TreeWalker: visits a tree and applies rule decisions
- PosixOperations: chown/chmod with per-operation outcomes
"""

from .operations import OperationResult, PosixOperations
from .walker import TreeWalker, WalkError, WalkStats

__all__ = [
    "OperationResult",
    "PosixOperations",
    "TreeWalker",
    "WalkError",
    "WalkStats",
]
