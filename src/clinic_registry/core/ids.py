"""Time-ordered identifiers (UUIDv7, RFC 9562) and the clock used to stamp records."""

import os
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union
from uuid import UUID

_MAX_COUNTER = 0xFFF


class UUIDv7Generator:
    """Generates monotonically increasing UUIDv7 values.

    The 12-bit ``rand_a`` field is used as a counter within the same
    millisecond (RFC 9562 method 1), so ids created by one process always
    sort in creation order.
    """

    def __init__(self, time_ms: Optional[Callable[[], int]] = None):
        self._time_ms = time_ms or (lambda: time.time_ns() // 1_000_000)
        self._lock = threading.Lock()
        self._last_ms = -1
        self._counter = 0

    def __call__(self) -> UUID:
        return self.new()

    def new(self) -> UUID:
        with self._lock:
            now_ms = self._time_ms()
            if now_ms > self._last_ms:
                self._last_ms = now_ms
                # Leave headroom so a burst in one millisecond rarely overflows
                self._counter = int.from_bytes(os.urandom(2), "big") & 0x3FF
            else:
                self._counter += 1
                if self._counter > _MAX_COUNTER:
                    self._last_ms += 1
                    self._counter = 0
            timestamp_ms = self._last_ms
            counter = self._counter

        rand_b = int.from_bytes(os.urandom(8), "big") & ((1 << 62) - 1)
        value = (timestamp_ms & ((1 << 48) - 1)) << 80
        value |= 0x7 << 76
        value |= counter << 64
        value |= 0b10 << 62
        value |= rand_b
        return UUID(int=value)


new_uuid7 = UUIDv7Generator()


def parse_uuid7(value: Union[str, UUID, None]) -> Optional[UUID]:
    """Parse a UUIDv7, returning None for anything else."""
    if value is None:
        return None
    if isinstance(value, UUID):
        parsed = value
    else:
        try:
            parsed = UUID(str(value).strip())
        except ValueError:
            return None
    if parsed.version != 7:
        return None
    return parsed


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


class FixedClock:
    """Clock returning a settable instant, for deterministic tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now
