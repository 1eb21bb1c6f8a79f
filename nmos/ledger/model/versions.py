"""
Version tokens for ledger records.

A version token is the string "<seconds>:<nanoseconds>", two non-negative
integers derived from the wall clock. Every create and update of a record
is stamped with a fresh token.

Invariants:
    - Each token issued by a generator is strictly greater than every
      token it issued before, even when the clock has not advanced
    - nanoseconds is always in [0, 999999999]
    - Tokens order numerically, (seconds, nanoseconds)

Example:
    >>> generator = VersionGenerator()
    >>> first = generator.next()
    >>> second = generator.next()
    >>> Version.parse(second) > Version.parse(first)
    True
"""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

NANOS_PER_SECOND = 1_000_000_000

# ASCII digits only, no trailing newline
_VERSION_PATTERN = re.compile(r"([0-9]+):([0-9]+)")

# Process-wide generator
_global_generator: Optional[VersionGenerator] = None
_generator_lock = threading.Lock()


@dataclass(frozen=True, order=True)
class Version:
    """Parsed version token.

    Attributes:
        seconds: Whole seconds since the epoch
        nanoseconds: Nanoseconds within the second
    """

    seconds: int
    nanoseconds: int

    def __post_init__(self) -> None:
        if self.seconds < 0:
            raise ValueError(f"seconds must be non-negative, got {self.seconds}")
        if not 0 <= self.nanoseconds < NANOS_PER_SECOND:
            raise ValueError(
                f"nanoseconds must be in [0, {NANOS_PER_SECOND - 1}], got {self.nanoseconds}"
            )

    def __str__(self) -> str:
        return f"{self.seconds}:{self.nanoseconds}"

    @classmethod
    def parse(cls, token: str) -> Version:
        """Parse a version token.

        Raises:
            ValueError: If the token is not of the form "<seconds>:<nanoseconds>"
        """
        match = _VERSION_PATTERN.fullmatch(token) if isinstance(token, str) else None
        if match is None:
            raise ValueError(f"Malformed version token: {token!r}")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def from_nanos(cls, total: int) -> Version:
        seconds, nanoseconds = divmod(total, NANOS_PER_SECOND)
        return cls(seconds, nanoseconds)

    def to_nanos(self) -> int:
        return self.seconds * NANOS_PER_SECOND + self.nanoseconds


def valid_version(token: Any) -> bool:
    """Whether token is a well-formed version token."""
    if not isinstance(token, str):
        return False
    match = _VERSION_PATTERN.fullmatch(token)
    return match is not None and int(match.group(2)) < NANOS_PER_SECOND


class VersionGenerator:
    """Issues strictly increasing version tokens.

    The coarse component comes from the clock. When two calls land within
    the clock resolution, or the clock steps backwards, the last token is
    bumped by one nanosecond instead.

    Thread-safety:
        next() is serialized behind an internal lock.

    Attributes:
        last: The last token issued, or None
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns) -> None:
        self._clock = clock
        self._last_nanos = -1
        self._lock = threading.Lock()

    @property
    def last(self) -> Optional[str]:
        if self._last_nanos < 0:
            return None
        return str(Version.from_nanos(self._last_nanos))

    def next(self, floor: Union[str, Version, None] = None) -> str:
        """Issue a new token.

        Args:
            floor: Optional token the result must also exceed, e.g. the
                current version of the record being replaced

        Returns:
            Token string greater than every previous token and than floor
        """
        if isinstance(floor, str):
            floor = Version.parse(floor)
        floor_nanos = floor.to_nanos() if floor is not None else -1

        with self._lock:
            candidate = self._clock()
            lower = max(self._last_nanos, floor_nanos)
            if candidate <= lower:
                candidate = lower + 1
            self._last_nanos = candidate
        return str(Version.from_nanos(candidate))


def get_version_generator() -> VersionGenerator:
    """Get the process-wide version generator.

    Creates one if none exists.
    """
    global _global_generator
    with _generator_lock:
        if _global_generator is None:
            _global_generator = VersionGenerator()
        return _global_generator
