from __future__ import annotations

import re

_HOUR_PATTERN = re.compile(r"^(?P<hour>\d{1,2}):(?P<minute>\d{2})$")


def normalize_hour(value: str) -> str:
    """Return ``value`` as a zero-padded ``HH:MM`` string.

    Hours are stored and compared as strings, so ``9:00`` and ``09:00`` must
    collapse to the same key or ordering and slot lookups break.
    """
    match = _HOUR_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid hour '{value}', expected HH:MM")
    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid hour '{value}', expected HH:MM")
    return f"{hour:02d}:{minute:02d}"
