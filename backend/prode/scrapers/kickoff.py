# Kickoff strings come in provider local time as "DD-MM-YYYY HH:MM".
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

KICKOFF_RE = re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})\s+(\d{1,2}):(\d{2})")
TIME_RE = re.compile(r"(\d{1,2}):(\d{2})")

DAY_NAMES = ("Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom")  # Monday first, like date.weekday()


def parse_kickoff(start_time: str) -> Optional[datetime]:
    """Naive local datetime for a provider kickoff string, or None."""
    if not start_time:
        return None
    m = KICKOFF_RE.search(start_time)
    if not m:
        return None
    d, mon, y, hh, mm = (int(g) for g in m.groups())
    try:
        return datetime(y, mon, d, hh, mm)
    except ValueError:
        return None


def parse_kickoff_date(start_time: str) -> Optional[date]:
    ko = parse_kickoff(start_time)
    return ko.date() if ko else None


def parse_time_of_day(start_time: str) -> Optional[tuple[int, int]]:
    if not start_time:
        return None
    m = TIME_RE.search(start_time)
    if not m:
        return None
    return (int(m.group(1)), int(m.group(2)))


def schedule_bucket(start_time: str) -> Optional[str]:
    """Weekday + time label ("Sáb-15:30") used to compare kickoff slots."""
    ko = parse_kickoff(start_time)
    if ko is None:
        return None
    return f"{DAY_NAMES[ko.weekday()]}-{ko.hour:02d}:{ko.minute:02d}"
