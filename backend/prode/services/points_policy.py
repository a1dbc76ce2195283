# prode/services/points_policy.py
from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Optional, Sequence

from prode.core.config import settings
from prode.schemas.predictions import PredictionPayload

POINT_TYPE_EXACT = "exact"
POINT_TYPE_RESULT = "result"
POINT_TYPE_NONE = "none"


def match_outcome(scores: Sequence[int]) -> str:
    """'home', 'away' or 'draw' for a [home, away] score pair."""
    if scores[0] > scores[1]:
        return "home"
    if scores[1] > scores[0]:
        return "away"
    return "draw"


def _norm_name(name: str) -> str:
    s = unicodedata.normalize("NFKD", name or "")
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return " ".join(s.lower().split())


@dataclass(frozen=True)
class PointsAward:
    points: int
    point_type: str
    scorer_hits: int = 0

    @property
    def label(self) -> str:
        return f"{self.point_type}+scorers" if self.scorer_hits else self.point_type


@dataclass(frozen=True)
class PointsConfiguration:
    """Weights of the scoring rules; the engine never branches on them."""

    exact_result: int = 3
    only_result: int = 1
    scorer_bonus: int = 5  # per side whose predicted scorer actually scored

    @classmethod
    def from_settings(cls) -> "PointsConfiguration":
        return cls(
            exact_result=settings.POINTS_EXACT_RESULT,
            only_result=settings.POINTS_ONLY_RESULT,
            scorer_bonus=settings.POINTS_SCORER_BONUS,
        )

    def score(
        self,
        real_scores: Optional[Sequence[int]],
        prediction: PredictionPayload,
        real_scorers: Optional[dict[str, list[str]]] = None,
    ) -> PointsAward:
        if not real_scores or len(real_scores) != 2:
            return PointsAward(0, POINT_TYPE_NONE)

        predicted = prediction.scores
        if tuple(real_scores) == tuple(predicted):
            award = PointsAward(self.exact_result, POINT_TYPE_EXACT)
        elif match_outcome(real_scores) == match_outcome(predicted):
            award = PointsAward(self.only_result, POINT_TYPE_RESULT)
        else:
            award = PointsAward(0, POINT_TYPE_NONE)

        hits = self._scorer_hits(prediction, real_scorers)
        if hits:
            return PointsAward(award.points + hits * self.scorer_bonus, award.point_type, hits)
        return award

    def _scorer_hits(self, prediction: PredictionPayload, real_scorers: Optional[dict[str, list[str]]]) -> int:
        if not self.scorer_bonus or not prediction.scorers or not real_scorers:
            return 0

        hits = 0
        for side in ("home", "away"):
            guess = getattr(prediction.scorers, side)
            if not guess:
                continue
            scored = {_norm_name(n) for n in real_scorers.get(side) or []}
            if _norm_name(guess) in scored:
                hits += 1
        return hits
