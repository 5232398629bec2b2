"""
Identifier generation.

Identifiers are ULIDs: a 48-bit millisecond timestamp followed by 80
random bits, rendered as 26 Crockford base32 characters. They are
fixed-length, safe as file names and SQL keys, and sort in creation
order. Within one millisecond the random part is incremented instead of
redrawn, so ids from one generator never go backwards.
"""

import secrets
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone

ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
ID_LENGTH = 26

_TIMESTAMP_BITS = 48
_RANDOM_BITS = 80
_DECODE = {char: index for index, char in enumerate(ALPHABET)}


def _encode(value: int) -> str:
    chars = []
    for _ in range(ID_LENGTH):
        chars.append(ALPHABET[value & 0x1F])
        value >>= 5
    return "".join(reversed(chars))


def _decode(value: str) -> int:
    if len(value) != ID_LENGTH:
        raise ValueError(f"identifier must be {ID_LENGTH} characters: {value!r}")
    result = 0
    for char in value:
        if char not in _DECODE:
            raise ValueError(f"invalid identifier character {char!r} in {value!r}")
        result = (result << 5) | _DECODE[char]
    if result >> (_TIMESTAMP_BITS + _RANDOM_BITS):
        raise ValueError(f"identifier out of range: {value!r}")
    return result


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class IdGenerator:
    """
    Thread-safe monotonic ULID generator.
    
    The clock is injectable for tests; it must return milliseconds
    since the Unix epoch.
    """
    
    def __init__(self, clock: Callable[[], int] | None = None):
        self._clock = clock or _now_ms
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_random = 0
    
    def new_id(self) -> str:
        """Generate a new identifier."""
        with self._lock:
            ms = self._clock()
            if ms >= 1 << _TIMESTAMP_BITS:
                raise OverflowError("timestamp does not fit in 48 bits")
            if ms <= self._last_ms:
                # Same millisecond, or the clock stepped back
                ms = self._last_ms
                random_part = self._last_random + 1
                if random_part >= 1 << _RANDOM_BITS:
                    raise OverflowError("identifier space exhausted for this millisecond")
            else:
                random_part = secrets.randbits(_RANDOM_BITS)
            self._last_ms = ms
            self._last_random = random_part
        return _encode((ms << _RANDOM_BITS) | random_part)


_generator = IdGenerator()


def new_id() -> str:
    """Generate a new identifier from the process-wide generator."""
    return _generator.new_id()


def is_valid_id(value: str) -> bool:
    try:
        _decode(value)
    except ValueError:
        return False
    return True


def id_timestamp(value: str) -> datetime:
    """Return the creation time encoded in an identifier."""
    ms = _decode(value) >> _RANDOM_BITS
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
