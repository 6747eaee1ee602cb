"""
Time-ordered identifiers.

Identifiers use the UUIDv7 layout: the top 48 bits hold Unix time in
milliseconds, followed by the version nibble, 12 random bits, the RFC 4122
variant, and 62 more random bits. Only whole seconds are encoded, so two
identifiers compare in creation order whenever they were created in
different seconds. Identifiers from independently populated archives can
be merged without colliding.
"""
import os
import threading
import time
import uuid
from typing import Callable, Optional

_VERSION = 0x7
_VARIANT = 0b10


class IdGenerator:
    """
    Issue strictly increasing UUIDv7 values.

    The generator remembers the last value it returned; if the clock stalls
    or steps backwards, the next identifier is the previous one plus one so
    no value is ever repeated.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None,
                 entropy: Optional[Callable[[int], bytes]] = None):
        self._clock = clock or time.time
        self._entropy = entropy or os.urandom
        self._last = 0
        self._lock = threading.Lock()

    def _compose(self, seconds: int) -> int:
        rand = int.from_bytes(self._entropy(10), "big")
        rand_a = rand >> 68 & 0xFFF
        rand_b = rand & ((1 << 62) - 1)
        value = (seconds * 1000 & ((1 << 48) - 1)) << 80
        value |= _VERSION << 76
        value |= rand_a << 64
        value |= _VARIANT << 62
        value |= rand_b
        return value

    def __call__(self) -> uuid.UUID:
        seconds = int(self._clock())
        with self._lock:
            value = self._compose(seconds)
            if value <= self._last:
                value = self._last + 1
            self._last = value
        return uuid.UUID(int=value)


_generator = IdGenerator()


def new_id() -> uuid.UUID:
    """Return a new identifier from the process-wide generator."""
    return _generator()


def id_timestamp(identifier: uuid.UUID) -> int:
    """Unix seconds encoded in an identifier."""
    return (identifier.int >> 80) // 1000


def parse_id(text: str) -> Optional[uuid.UUID]:
    """Parse the canonical string form, returning None if it isn't one."""
    try:
        return uuid.UUID(text)
    except (ValueError, AttributeError, TypeError):
        return None
