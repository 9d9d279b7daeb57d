"""
Wildcard path patterns.

A pattern is literal text in which ``*`` matches any run of characters other
than ``/``, so a wildcard never spans path segments. Patterns are anchored at
both ends: ``/api/*`` matches ``/api/users`` and ``/api/`` but neither
``/api`` nor ``/api/v1/users``. ``**`` is simply two wildcards in a row and
behaves like ``*``.
"""

import re
from functools import lru_cache
from typing import Iterable

SEGMENT_WILDCARD = "[^/]*"


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> "re.Pattern[str]":
    literal_parts = pattern.split("*")
    return re.compile(SEGMENT_WILDCARD.join(re.escape(p) for p in literal_parts))


def matches(request_path: str, pattern: str) -> bool:
    return compile_pattern(pattern).fullmatch(request_path) is not None


def is_path_allowed(request_path: str, patterns: Iterable[str]) -> bool:
    """True if any pattern matches the whole request path."""
    return any(matches(request_path, pattern) for pattern in patterns)
