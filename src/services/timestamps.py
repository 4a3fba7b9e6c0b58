from __future__ import annotations

from typing import Optional

from .errors import InvalidTimestampError


def parse_timestamp(value: Optional[str]) -> Optional[int]:
    """
    Parse "MM:SS" or "H:MM:SS" into milliseconds.

    Empty input means "no bound" and returns None. Seconds must be below 60,
    and minutes too when hours are given.
    """
    if value is None or not value.strip():
        return None

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise InvalidTimestampError(value)

    numbers = [int(p) for p in parts]
    if len(numbers) == 2:
        hours, minutes, seconds = 0, numbers[0], numbers[1]
    else:
        hours, minutes, seconds = numbers
        if minutes >= 60:
            raise InvalidTimestampError(value)

    if seconds >= 60:
        raise InvalidTimestampError(value)

    return ((hours * 60 + minutes) * 60 + seconds) * 1000
