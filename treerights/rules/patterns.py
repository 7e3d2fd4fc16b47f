#!/usr/bin/env python3
r"""Gitignore-style pattern compilation for relative paths.

This module turns one rule pattern into an anchored matcher:
- ``*`` / ``?`` / ``[...]`` wildcards within a path component
- ``**`` spanning whole path components (leading, inner, trailing)
- Leading ``/`` anchoring, unanchored patterns match after any ``/``
- Directory-only patterns matching paths that carry a trailing ``/``

Relative paths are ``/``-joined, without a leading ``/``, and directories
carry a trailing ``/``; the tree root itself is ``/``. Negation (``!``) is
not supported.

Example:
    >>> matcher = compile_pattern("**/*.log")
    >>> matcher.matches("a/b/c.log")
    True
    >>> compile_pattern("build", directory_only=True).matches("src/build/")
    True
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Pattern

from treerights.core.constants import SEPARATOR

# Patterns that match every path of the matcher's kind
_MATCH_ALL = frozenset({"*", "**", "/**"})

# One or more leading '**/' components, optionally after a '/'
_LEADING_GLOBSTAR = re.compile(r"^/?(?:\*\*/)+")

# Consecutive '/**' components
_GLOBSTAR_RUN = re.compile(r"(?:/\*\*)+(?=/|\Z)")

# Prefix for unanchored patterns: start of path or right after any '/'
_UNANCHORED_PREFIX = "(?:.*/)?"


class PatternError(ValueError):
    """Raised when a pattern cannot be compiled."""


@dataclass(frozen=True)
class PathMatcher:
    """Compiled matcher for one pattern.

    A matcher only accepts paths of its own kind: directory-only matchers
    require the trailing ``/`` that marks directory paths, other matchers
    reject it.
    """

    pattern: str
    directory_only: bool
    regex: Optional[Pattern[str]]  # None matches every path of the kind

    def matches(self, relative_path: str) -> bool:
        """Check if the whole relative path matches."""
        if relative_path.endswith(SEPARATOR) != self.directory_only:
            return False
        if self.regex is None:
            return True
        return self.regex.fullmatch(relative_path) is not None


def _bracket_end(body: str, start: int) -> int:
    """Return the index of the ']' closing the class opened at start, or -1."""
    j = start + 1
    if j < len(body) and body[j] in "!^":
        j += 1
    # A ']' right after the opening bracket is a member of the class
    if j < len(body) and body[j] == "]":
        j += 1
    while j < len(body) and body[j] != "]":
        # An escaped ']' does not close the class
        j += 2 if body[j] == "\\" else 1
    return j if j < len(body) else -1


def _translate_class(inner: str) -> str:
    out = ["["]
    i = 0
    if inner[:1] in ("!", "^"):
        out.append("^")
        i = 1
    while i < len(inner):
        c = inner[i]
        if c == "\\" and i + 1 < len(inner):
            out.append(re.escape(inner[i + 1]))
            i += 2
        else:
            out.append(r"\[" if c == "[" else c)
            i += 1
    out.append("]")
    return "".join(out)


def _translate(body: str) -> str:
    """Translate a collapsed pattern body into a regular expression."""
    out: List[str] = []
    i = 0
    n = len(body)

    while i < n:
        if body.startswith("/**/", i):
            # Zero or more whole components
            out.append("/(?:[^/]+/)*")
            i += 4
        elif body.startswith("/**", i) and i + 3 == n:
            out.append("/.+")
            i += 3
        else:
            c = body[i]
            if c == "*":
                if body.startswith("**", i):
                    raise PatternError(f"Misplaced '**' in pattern: {body}")
                out.append("[^/]*")
                i += 1
            elif c == "?":
                j = i
                while j < n and body[j] == "?":
                    j += 1
                count = j - i
                out.append("[^/]" if count == 1 else f"[^/]{{{count}}}")
                i = j
            elif c == "[":
                end = _bracket_end(body, i)
                if end < 0:
                    out.append(re.escape(c))
                    i += 1
                else:
                    out.append(_translate_class(body[i + 1 : end]))
                    i = end + 1
            elif c == "\\" and i + 1 < n:
                out.append(re.escape(body[i + 1]))
                i += 2
            else:
                out.append(re.escape(c))
                i += 1

    return "".join(out)


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str, directory_only: bool = False) -> PathMatcher:
    """Compile a rule pattern into a PathMatcher.

    Args:
        pattern: Pattern text with any trailing '/' already stripped
        directory_only: Whether the pattern carried a trailing '/'

    Returns:
        Compiled matcher

    Raises:
        PatternError: If the pattern cannot be compiled
    """
    if pattern in _MATCH_ALL:
        return PathMatcher(pattern, directory_only, None)

    if not pattern:
        if not directory_only:
            raise PatternError("Empty pattern")
        # Bare '/': the tree root only
        return PathMatcher(pattern, directory_only, re.compile(re.escape(SEPARATOR)))

    leading = _LEADING_GLOBSTAR.match(pattern)
    if leading:
        anchored = False
        body = pattern[leading.end():]
    elif pattern.startswith(SEPARATOR):
        anchored = True
        body = pattern[1:]
    else:
        anchored = False
        body = pattern

    body = _GLOBSTAR_RUN.sub("/**", body)
    if body in ("", "**"):
        return PathMatcher(pattern, directory_only, None)

    expression = _translate(body)
    if directory_only and not body.endswith("/**"):
        expression += re.escape(SEPARATOR)
    if not anchored:
        expression = _UNANCHORED_PREFIX + expression

    try:
        regex = re.compile(expression, re.DOTALL)
    except re.error as e:
        raise PatternError(f"Invalid pattern {pattern!r}: {e}") from e

    return PathMatcher(pattern, directory_only, regex)
