# prode/services/round_calculator.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from prode.core.game_config import ERROR_FALLBACK_AFTER_ROUND, MAX_ROUNDS
from prode.core.sentry import report_error
from prode.schemas.matches import Match
from prode.scrapers.promiedos import PromiedosClient
from prode.services.round_validity import is_round_valid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundAnalysis:
    round_number: int
    total: int
    finished: int
    live: int
    scheduled: int
    is_valid: bool

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.finished == self.total

    @property
    def has_live(self) -> bool:
        return self.live > 0

    def as_dict(self) -> dict:
        return {
            "round": self.round_number,
            "total_games": self.total,
            "finished_games": self.finished,
            "live_games": self.live,
            "scheduled_games": self.scheduled,
            "is_valid": self.is_valid,
            "is_complete": self.is_complete,
            "has_live_games": self.has_live,
        }


def analyze_matches(round_number: int, matches: List[Match]) -> RoundAnalysis:
    return RoundAnalysis(
        round_number=round_number,
        total=len(matches),
        finished=sum(1 for m in matches if m.is_finished),
        live=sum(1 for m in matches if m.is_live),
        scheduled=sum(1 for m in matches if m.is_scheduled),
        is_valid=is_round_valid(matches),
    )


class RoundCalculator:
    """
    Infers the "current" round by walking rounds 1..MAX_ROUNDS in order.

    Heavy (one provider call per round): meant for the scheduled recompute
    and for manual refreshes, not for request paths.
    """

    def __init__(self, provider: PromiedosClient, max_rounds: int = MAX_ROUNDS):
        self.provider = provider
        self.max_rounds = max_rounds

    def calculate_current_round(self) -> int:
        logger.info("Calculating current round...")
        last_valid = 1

        for round_number in range(1, self.max_rounds + 1):
            try:
                matches = self.provider.fetch_matches(round_number)
            except Exception as exc:
                fallback = self._handle_fetch_error(exc, round_number, last_valid)
                if fallback is not None:
                    return fallback
                continue

            if not matches:
                logger.warning("Round %s has no matches, skipping", round_number)
                continue

            analysis = analyze_matches(round_number, matches)
            logger.debug(
                "Round %s: %d finished, %d live, %d scheduled of %d",
                round_number, analysis.finished, analysis.live, analysis.scheduled, analysis.total,
            )

            if not analysis.is_valid:
                logger.info(
                    "Round %s looks like placeholder data, keeping last valid round %s",
                    round_number, last_valid,
                )
                return last_valid

            last_valid = round_number

            if analysis.has_live:
                logger.info("Current round: %s (live matches)", round_number)
                return round_number

            if analysis.scheduled > 0:
                return self._resolve_scheduled_round(round_number)

            if analysis.is_complete:
                logger.debug("Round %s fully finished, checking next", round_number)
                continue

            logger.info("Round %s in an unexpected state, using it as current", round_number)
            return round_number

        logger.warning("Could not decide current round, using last valid: %s", last_valid)
        return last_valid

    def _resolve_scheduled_round(self, round_number: int) -> int:
        if round_number == 1:
            logger.info("Current round: 1 (first round with scheduled matches)")
            return round_number

        if self._previous_round_closed(round_number - 1):
            logger.info("Current round: %s (previous round finished or invalid)", round_number)
            return round_number

        logger.info("Previous round %s not finished yet, using it", round_number - 1)
        return round_number - 1

    def _previous_round_closed(self, previous: int) -> bool:
        # Only finished-vs-total is checked; a previous round with unstarted
        # matches counts as open the same as one with matches in play.
        try:
            matches = self.provider.fetch_matches(previous)
        except Exception as exc:
            logger.warning("Could not check previous round %s: %s", previous, exc)
            return True

        if not is_round_valid(matches):
            return True
        return sum(1 for m in matches if m.is_finished) == len(matches)

    def _handle_fetch_error(self, exc: Exception, round_number: int, last_valid: int) -> Optional[int]:
        logger.warning("Error checking round %s: %s", round_number, exc)
        report_error("matchday-calculator", {"round": round_number}, exc, level="warning")

        if round_number > ERROR_FALLBACK_AFTER_ROUND:
            logger.info("Round %s unreachable, using last valid: %s", round_number, last_valid)
            return last_valid
        return None

    def analyze_round_status(self, round_number: int) -> RoundAnalysis:
        """Per-round counts for diagnostics; provider errors propagate."""
        matches = self.provider.fetch_matches(round_number)
        if not matches:
            return RoundAnalysis(round_number, 0, 0, 0, 0, False)
        return analyze_matches(round_number, matches)
