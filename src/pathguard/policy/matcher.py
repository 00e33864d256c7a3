"""Path matching: compile rule patterns and pick the authoritative rule for a path.

Pattern grammar:

- ``**`` matches zero or more whole path segments (``src/**/x.ts`` matches
  ``src/x.ts`` and ``src/a/b/x.ts``); a trailing ``**`` matches everything
  below the prefix.
- ``*`` matches within a single segment and never crosses ``/``.
- every other character is literal.

A pattern ending in ``**`` is a left-anchored prefix match; any other pattern
must match the whole path.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathguard.policy.rule_store import ProtectionRule

_TOKEN_RE = re.compile(r"\*\*/|\*\*|\*")


def normalize_path(path: str) -> str:
    """Normalize a repository path to forward slashes without a ``./`` prefix."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


@functools.lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a rule pattern into an anchored regular expression."""
    parts: list[str] = ["^"]
    pos = 0
    for token in _TOKEN_RE.finditer(pattern):
        parts.append(re.escape(pattern[pos : token.start()]))
        text = token.group()
        if text == "**/":
            parts.append("(?:.*/)?")
        elif text == "**":
            parts.append(".*")
        else:
            parts.append("[^/]*")
        pos = token.end()
    parts.append(re.escape(pattern[pos:]))

    if not pattern.endswith("**"):
        parts.append(r"\Z")
    return re.compile("".join(parts))


def pattern_matches(pattern: str, path: str) -> bool:
    """Return True if *pattern* matches the (normalized) *path*."""
    return compile_pattern(pattern).match(normalize_path(path)) is not None


def match_rule(path: str, rules: Iterable[ProtectionRule]) -> ProtectionRule | None:
    """Return the most specific rule matching *path*, or None.

    Specificity is the length of the raw pattern string: the longest matching
    pattern wins.  On equal lengths the first-declared rule is kept.
    """
    normalized = normalize_path(path)
    best: ProtectionRule | None = None
    best_len = -1

    for rule in rules:
        if compile_pattern(rule.pattern).match(normalized) is None:
            continue
        if len(rule.pattern) > best_len:
            best = rule
            best_len = len(rule.pattern)

    return best
