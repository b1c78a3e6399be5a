"""Surrogate id generation.

A surrogate id is a UTC timestamp followed by a 19 digit, zero padded random
non-negative 63-bit integer::

    20230927T214614.123456789_0004611686018427387904

The fraction holds up to nanosecond precision with trailing zeros trimmed and
is left out entirely on a whole second. Ids therefore sort roughly in creation
order. They are not unique by construction; the ingestion engine checks each
candidate against the store and regenerates on collision.
"""

import secrets
import time
from datetime import datetime, timezone
from typing import Callable

RANDOM_DIGITS = 19
SEPARATOR = "_"


def random_int63() -> int:
    return secrets.randbits(63)


def format_timestamp(ns: int) -> str:
    """Format nanoseconds since the epoch as ``YYYYMMDDTHHMMSS[.fraction]`` in UTC."""
    seconds, nanos = divmod(ns, 1_000_000_000)
    stamp = datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y%m%dT%H%M%S")
    fraction = f"{nanos:09d}".rstrip("0")
    if fraction:
        stamp += "." + fraction
    return stamp


class SurrogateKeyGenerator:
    """Produces surrogate ids. Never fails.

    Args:
        clock: Returns nanoseconds since the epoch.
        random_source: Returns a non-negative integer below 10**19.
    """

    def __init__(
        self,
        clock: Callable[[], int] = time.time_ns,
        random_source: Callable[[], int] = random_int63,
    ):
        self._clock = clock
        self._random_source = random_source

    def next_id(self) -> str:
        return (
            f"{format_timestamp(self._clock())}"
            f"{SEPARATOR}{self._random_source():0{RANDOM_DIGITS}d}"
        )
