# inventory/timeutil.py
"""Приведение временных меток к целым секундам Unix (UTC)."""

import os
import time
from typing import Tuple

# Интервалы по 100 нс между 1601-01-01 и 1970-01-01
FILETIME_EPOCH_OFFSET = 116444736000000000
FILETIME_TICKS_PER_SECOND = 10000000
NS_PER_SECOND = 1000000000


def filetime_to_unix(filetime: int) -> int:
    """Windows FILETIME -> секунды Unix, дробная часть отбрасывается"""
    ticks = filetime - FILETIME_EPOCH_OFFSET
    seconds = abs(ticks) // FILETIME_TICKS_PER_SECOND
    return seconds if ticks >= 0 else -seconds


def ns_to_unix(ns: int) -> int:
    """Наносекунды Unix -> секунды, дробная часть отбрасывается как у FILETIME"""
    seconds = abs(ns) // NS_PER_SECOND
    return seconds if ns >= 0 else -seconds


def stat_times(st: os.stat_result) -> Tuple[int, int, int]:
    """
    Время создания, изменения и доступа в секундах Unix.
    Время создания берётся из st_birthtime, если платформа его даёт,
    иначе из st_ctime.
    """
    birthtime = getattr(st, 'st_birthtime', None)
    if birthtime is not None:
        created = int(birthtime)
    else:
        created = ns_to_unix(st.st_ctime_ns)
    return created, ns_to_unix(st.st_mtime_ns), ns_to_unix(st.st_atime_ns)


def current_scan_time() -> int:
    return int(time.time())
