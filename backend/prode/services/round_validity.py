# prode/services/round_validity.py
from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, List

from prode.core.game_config import (
    MAX_SAME_SCHEDULE_PCT,
    MIN_VALID_MATCHES_PCT,
    PLACEHOLDER_KICKOFF_PATTERNS,
    REALISTIC_MINUTES,
)
from prode.schemas.matches import Match, Team
from prode.scrapers.kickoff import parse_time_of_day, schedule_bucket

logger = logging.getLogger(__name__)


# ============================
# Real round vs. placeholder
# ============================
# Before fixtures are scheduled the provider fills future rounds with
# repeated kickoff stamps and half-filled teams. A round counts as real when:
#   - >= 75% of its matches have a real kickoff, at a footballing hour,
#     with both teams fully populated, AND
#   - kickoffs are spread: >= 2 (weekday, time) slots and no slot holds
#     more than 70% of the matches.


def has_valid_start_time(start_time: str) -> bool:
    if not start_time or not start_time.strip():
        return False
    return not any(p in start_time for p in PLACEHOLDER_KICKOFF_PATTERNS)


def has_realistic_schedule(start_time: str) -> bool:
    tp = parse_time_of_day(start_time)
    if tp is None:
        return False
    hour, minute = tp

    realistic_hour = (
        (14 <= hour <= 22)
        or (hour == 13 and minute >= 30)
        or (hour == 23 and minute == 0)
    )
    return realistic_hour and minute in REALISTIC_MINUTES


def has_valid_teams(teams: List[Team]) -> bool:
    if not teams or len(teams) != 2:
        return False
    return all(
        t.id.strip() and t.name.strip() and t.short_name.strip()
        for t in teams
    )


def is_match_valid(match: Match) -> bool:
    return (
        has_valid_start_time(match.start_time)
        and has_realistic_schedule(match.start_time)
        and has_valid_teams(match.teams)
    )


def has_distributed_schedules(matches: List[Match]) -> bool:
    """
    True when kickoffs are spread over several weekday/time slots.
    A single match cannot be judged, so it passes.
    """
    if len(matches) <= 1:
        return True

    buckets = Counter(
        b for b in (schedule_bucket(m.start_time) for m in matches if m.start_time.strip()) if b
    )
    total = sum(buckets.values())
    if total == 0:
        return False

    max_same = max(buckets.values())
    same_pct = max_same / total * 100.0
    distributed = len(buckets) >= 2 and same_pct <= MAX_SAME_SCHEDULE_PCT

    logger.debug(
        "Schedules: %d unique of %d, max same slot %d (%.1f%%) -> %s",
        len(buckets), total, max_same, same_pct, "distributed" if distributed else "clustered",
    )
    return distributed


def is_round_valid(matches: Iterable[Match]) -> bool:
    matches = list(matches)
    if not matches:
        return False

    valid_count = sum(1 for m in matches if is_match_valid(m))
    valid_pct = valid_count / len(matches) * 100.0
    distributed = has_distributed_schedules(matches)

    is_valid = valid_pct >= MIN_VALID_MATCHES_PCT and distributed
    logger.debug(
        "Round data: %d/%d valid (%.1f%%), distributed=%s -> %s",
        valid_count, len(matches), valid_pct, distributed, "VALID" if is_valid else "PLACEHOLDER",
    )
    return is_valid
