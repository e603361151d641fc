from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta

MAX_LIMIT = 100


def clamp_page(page: int | None, limit: int | None) -> tuple[int, int]:
    p = max(1, int(page or 1))
    lim = int(limit or 20)
    lim = max(1, min(MAX_LIMIT, lim))
    return p, lim


def total_pages(total: int, limit: int) -> int:
    return max(1, math.ceil(total / limit)) if limit else 1


def day_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """Half-open ``[start 00:00, end+1 00:00)`` window over whole days."""
    lo = datetime.combine(start, time.min) if start is not None else None
    hi = datetime.combine(end + timedelta(days=1), time.min) if end is not None else None
    return lo, hi
