# presence/utils/timeutil.py
"""Epoch-millisecond helpers. Scan timestamps and durations are integer ms."""

import time

MS_PER_MINUTE = 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def ms_to_minutes(duration_ms: int) -> int:
    return duration_ms // MS_PER_MINUTE
