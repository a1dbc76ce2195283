# prode/services/prediction_cache.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from prode.core.game_config import FALLBACK_INVALIDATION_ROUNDS, MAX_ROUNDS
from prode.core.sentry import report_error
from prode.crud.crud_prediction import get_predictions_for_matches
from prode.models.prediction import Prediction
from prode.scrapers.promiedos import PromiedosClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PredictionSnapshot:
    id: int
    match_id: str
    user_id: int
    user_name: Optional[str]
    prediction: dict
    processed: bool
    live_points: int
    created_at: datetime

    @classmethod
    def from_row(cls, p: Prediction) -> "PredictionSnapshot":
        return cls(
            id=p.id,
            match_id=p.match_id,
            user_id=p.user_id,
            user_name=p.user.name if p.user is not None else None,
            prediction=dict(p.prediction or {}),
            processed=bool(p.processed),
            live_points=int(p.live_points or 0),
            created_at=p.created_at,
        )


@dataclass
class RoundEntry:
    round_number: int
    match_ids: frozenset
    predictions: Dict[str, List[PredictionSnapshot]]
    loaded_at: datetime = field(default_factory=datetime.utcnow)


class PredictionCache:
    """
    Predictions of a whole round grouped by match id.

    A miss costs one provider call (to know the round's match ids) and one
    bulk query. There is no TTL: entries are only dropped by invalidation,
    which the prediction write path and the scoring engine trigger.
    """

    def __init__(
        self,
        provider: PromiedosClient,
        session_factory: Callable[[], Session],
        max_rounds: int = MAX_ROUNDS,
    ):
        self.provider = provider
        self.session_factory = session_factory
        self.max_rounds = max_rounds
        self._entries: Dict[int, RoundEntry] = {}
        self._lock = threading.RLock()
        # bumped on every invalidation; a load that raced one is not stored
        self._generation = 0

    def get(self, round_number: int) -> Dict[str, List[PredictionSnapshot]]:
        with self._lock:
            entry = self._entries.get(round_number)
            generation = self._generation
        if entry is not None:
            logger.debug("Cache HIT for round %s", round_number)
            return {k: list(v) for k, v in entry.predictions.items()}

        logger.debug("Cache MISS for round %s, loading from DB", round_number)
        entry = self._load(round_number)

        with self._lock:
            if generation == self._generation:
                self._entries[round_number] = entry
        return {k: list(v) for k, v in entry.predictions.items()}

    def _load(self, round_number: int) -> RoundEntry:
        matches = self.provider.fetch_matches(round_number)
        match_ids = [m.id for m in matches]

        grouped: Dict[str, List[PredictionSnapshot]] = {}
        if match_ids:
            with self.session_factory() as db:
                rows = get_predictions_for_matches(db, match_ids)
                for p in rows:
                    grouped.setdefault(p.match_id, []).append(PredictionSnapshot.from_row(p))
        else:
            rows = []
            logger.warning("No matches for round %s", round_number)

        logger.info(
            "Loaded %d predictions for round %s (%d matches)", len(rows), round_number, len(match_ids)
        )
        return RoundEntry(round_number=round_number, match_ids=frozenset(match_ids), predictions=grouped)

    def invalidate(self, match_ids: Iterable[str]) -> List[int]:
        """Drop every cached round holding one of `match_ids`; returns the rounds dropped."""
        ids = {str(m) for m in match_ids}
        if not ids:
            return []

        with self._lock:
            self._generation += 1
            affected = [r for r, e in self._entries.items() if e.match_ids & ids]

        if not affected:
            affected = self._discover_rounds(ids)

        with self._lock:
            for r in affected:
                self._entries.pop(r, None)

        logger.info("Cache invalidated for rounds %s (%d matches)", sorted(affected), len(ids))
        return sorted(affected)

    def _discover_rounds(self, ids: set) -> List[int]:
        # Cold cache: ask the provider which round(s) own the matches
        found: List[int] = []
        failures = 0
        for round_number in range(1, self.max_rounds + 1):
            try:
                matches = self.provider.fetch_matches(round_number)
            except Exception as exc:
                failures += 1
                logger.debug("Round %s not reachable while locating matches: %s", round_number, exc)
                continue
            if any(m.id in ids for m in matches):
                found.append(round_number)

        if failures == self.max_rounds:
            logger.warning("Could not locate rounds for invalidation, dropping rounds %s", FALLBACK_INVALIDATION_ROUNDS)
            report_error(
                "matchday-cache",
                {"match_ids": sorted(ids)},
                RuntimeError("provider unreachable while locating rounds"),
                level="warning",
            )
            return list(FALLBACK_INVALIDATION_ROUNDS)
        return found

    def invalidate_round(self, round_number: int) -> None:
        with self._lock:
            self._generation += 1
            self._entries.pop(round_number, None)

    def invalidate_all(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries.clear()
        logger.info("Cache fully invalidated")

    def stats(self) -> dict:
        with self._lock:
            entries = list(self._entries.values())
        return {
            "total_entries": len(entries),
            "entries": [
                {
                    "round": e.round_number,
                    "matches": len(e.match_ids),
                    "matches_with_predictions": len(e.predictions),
                    "predictions": sum(len(v) for v in e.predictions.values()),
                    "loaded_at": e.loaded_at.isoformat(),
                }
                for e in sorted(entries, key=lambda e: e.round_number)
            ],
        }
