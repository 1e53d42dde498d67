"""Fixed-width, lexicographically sortable timestamps.

Stores compare attribute values as strings, so lease times are written as
zero-padded Unix epoch seconds. Twelve digits cover every second up to the
end of year 9999.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Union

TIME_WIDTH = 12

_LIMIT = 10**TIME_WIDTH

Moment = Union[dt.datetime, int, float]


def _epoch_seconds(moment: Moment) -> int:
    if isinstance(moment, dt.datetime):
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=dt.timezone.utc)
        return math.floor(moment.timestamp())
    if isinstance(moment, bool) or not isinstance(moment, (int, float)):
        raise TypeError(f"Cannot encode {type(moment).__name__} as a lock time")
    return math.floor(moment)


def encode_time(moment: Moment) -> str:
    """Encode a datetime or epoch seconds as a 12-digit string."""
    seconds = _epoch_seconds(moment)
    if seconds < 0 or seconds >= _LIMIT:
        raise ValueError(f"Lock time out of range: {seconds}")
    return f"{seconds:0{TIME_WIDTH}d}"


def decode_time(value: str) -> dt.datetime:
    """Decode an encoded lock time into an aware UTC datetime."""
    if len(value) != TIME_WIDTH or not value.isdigit():
        raise ValueError(f"Malformed lock time: {value!r}")
    return dt.datetime.fromtimestamp(int(value), tz=dt.timezone.utc)
