"""
Safe compilation and matching of free-text filter patterns.

Query values for free-text fields are regular expressions supplied by
untrusted callers. Patterns are compiled with the regex package, whose
matching functions take a timeout, and are screened before compilation.

Invariants:
    - Patterns longer than the configured maximum are rejected
    - Patterns that quantify a group which itself repeats or alternates
      (e.g. "(a+)+", "(a|aa)*") are rejected
    - A rejected or malformed pattern yields None, never an exception
    - A match that runs past its timeout raises MatchTimeout
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Optional

import regex

logger = logging.getLogger(__name__)

# A group containing a quantifier or an alternation, itself quantified
_NESTED_QUANTIFIER = re.compile(
    r"\((?:[^()\\]|\\.)*(?:[+*}]|\|)(?:[^()\\]|\\.)*\)\s*(?:[+*]|\{\d*,)"
)


class MatchTimeout(Exception):
    """A free-text pattern exceeded its matching time budget."""


def is_safe_pattern(pattern: str, max_length: int) -> bool:
    """Whether a pattern is within the accepted complexity bounds."""
    if len(pattern) > max_length:
        return False
    return _NESTED_QUANTIFIER.search(pattern) is None


@lru_cache(maxsize=256)
def compile_pattern(pattern: str, max_length: int = 256) -> Optional[regex.Pattern]:
    """Compile a free-text filter pattern.

    Args:
        pattern: Regular expression from a query parameter
        max_length: Longest accepted pattern

    Returns:
        Compiled pattern, or None if the pattern is rejected or malformed
    """
    if not is_safe_pattern(pattern, max_length):
        logger.debug(f"Rejected free-text pattern {pattern!r}")
        return None
    try:
        return regex.compile(pattern)
    except regex.error as e:
        logger.debug(f"Malformed free-text pattern {pattern!r}: {e}")
        return None


def search(pattern: regex.Pattern, text: str, timeout: float) -> bool:
    """Search text for pattern within a time budget.

    Raises:
        MatchTimeout: If matching ran longer than timeout seconds
    """
    try:
        return pattern.search(text, timeout=timeout) is not None
    except TimeoutError:
        raise MatchTimeout(pattern.pattern) from None
