# prode/services/scoring.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from prode.core.config import settings
from prode.core.sentry import report_error
from prode.crud.crud_points import (
    apply_points_delta,
    get_user_tournament_ids,
    recompute_participant_live_points,
    reset_round_live_points,
)
from prode.crud.crud_prediction import (
    claim_final_settlement,
    claim_live_points,
    get_prediction_for_update,
    zero_live_points_for_matches,
)
from prode.schemas.matches import Match
from prode.schemas.predictions import PredictionPayload
from prode.scrapers.kickoff import parse_kickoff_date
from prode.scrapers.promiedos import PromiedosClient
from prode.services.points_policy import PointsConfiguration
from prode.services.prediction_cache import PredictionCache, PredictionSnapshot
from prode.services.round_calculator import RoundCalculator
from prode.services.round_repository import CurrentRoundRepository

logger = logging.getLogger(__name__)

KIND_FINAL = "final"
KIND_LIVE = "live"


@dataclass
class PointsDetail:
    user_id: int
    user_name: Optional[str]
    prediction_id: int
    match_id: str
    predicted: List[int]
    real: List[int]
    points_awarded: int
    delta: int
    point_type: str
    kind: str


@dataclass
class SweepResult:
    round_number: int
    total_matches: int = 0
    finished_matches: int = 0
    live_matches: int = 0
    processed_matches: int = 0
    final_count: int = 0
    live_count: int = 0
    failures: int = 0
    live_reset: bool = False
    user_points_details: List[PointsDetail] = field(default_factory=list)

    @property
    def total_points_awarded(self) -> int:
        return sum(d.points_awarded for d in self.user_points_details if d.kind == KIND_FINAL)

    def summary(self) -> dict:
        finals = [d for d in self.user_points_details if d.kind == KIND_FINAL]
        return {
            "users_affected": len({d.user_id for d in self.user_points_details}),
            "total_points_awarded": self.total_points_awarded,
            "exact_predictions": sum(1 for d in finals if d.point_type.startswith("exact")),
            "result_predictions": sum(1 for d in finals if d.point_type.startswith("result")),
            "failed_predictions": sum(1 for d in finals if d.point_type.startswith("none")),
        }

    def as_dict(self) -> dict:
        out = asdict(self)
        out["summary"] = self.summary()
        return out


class ScoringEngine:
    """
    Turns match results into points for the round the system considers current.

    Every write claims the prediction with a conditional UPDATE in the same
    transaction as the point deltas. A final claim only matches a row that is
    still unprocessed with the `live_points` that were read; a live claim only
    matches the `live_points` the delta was computed against. A sweep that
    loses the claim applies nothing, so overlapping sweeps do not double count.
    """

    def __init__(
        self,
        provider: PromiedosClient,
        cache: PredictionCache,
        calculator: RoundCalculator,
        session_factory: Callable[[], Session],
        points_config: Optional[PointsConfiguration] = None,
        timezone: Optional[str] = None,
    ):
        self.provider = provider
        self.cache = cache
        self.calculator = calculator
        self.session_factory = session_factory
        self.rounds = CurrentRoundRepository(session_factory)
        self.points = points_config or PointsConfiguration.from_settings()
        self.tz = ZoneInfo(timezone or settings.TIMEZONE)

    # --- round to work on ---

    def resolve_round(self) -> int:
        committed = self.rounds.get_current_round()
        if committed is not None:
            return committed
        logger.info("No committed current round yet, calculating it")
        return self.calculator.calculate_current_round()

    # --- sweep ---

    def process_round(self, round_number: Optional[int] = None) -> SweepResult:
        if round_number is None:
            round_number = self.resolve_round()
        logger.info("Processing points for round %s", round_number)

        matches = self.provider.fetch_matches(round_number)
        result = SweepResult(round_number=round_number, total_matches=len(matches))
        if not matches:
            logger.info("Round %s has no matches, nothing to score", round_number)
            return result

        predictions = self.cache.get(round_number)
        touched = False

        for match in matches:
            snapshots = predictions.get(match.id, [])
            try:
                if match.is_finished:
                    result.finished_matches += 1
                    if self._settle_final(match, round_number, snapshots, result):
                        result.processed_matches += 1
                        touched = True
                elif match.is_live:
                    result.live_matches += 1
                    if self._settle_live(match, round_number, snapshots, result):
                        touched = True
            except Exception as exc:
                result.failures += 1
                logger.error("Error scoring match %s: %s", match.id, exc)
                report_error("points", {"match_id": match.id, "round": round_number}, exc)

        if result.live_matches == 0:
            if self._clear_live_points(round_number, [m.id for m in matches]):
                touched = True
            result.live_reset = True

        if touched:
            self.cache.invalidate_round(round_number)

        logger.info(
            "Round %s processed: %d final, %d live, %d failures",
            round_number, result.final_count, result.live_count, result.failures,
        )
        return result

    def _settle_final(self, match: Match, round_number: int, snapshots: List[PredictionSnapshot], result: SweepResult) -> int:
        real = match.score_pair
        if real is None:
            logger.warning("Finished match %s has no scores, skipping", match.id)
            return 0

        pending = [s for s in snapshots if not s.processed]
        if not pending:
            logger.debug("No unprocessed predictions for match %s", match.id)
            return 0

        settled = 0
        for snap in pending:
            try:
                detail = self._commit_final(snap.id, match, round_number, real)
            except Exception as exc:
                result.failures += 1
                logger.error("Error processing prediction %s: %s", snap.id, exc)
                report_error("points", {"prediction_id": snap.id, "match_id": match.id}, exc)
                continue
            if detail is None:
                continue
            settled += 1
            result.final_count += 1
            result.user_points_details.append(detail)
        return settled

    def _commit_final(self, prediction_id: int, match: Match, round_number: int, real: tuple) -> Optional[PointsDetail]:
        with self.session_factory() as db:
            row = get_prediction_for_update(db, prediction_id)
            if row is None or row.processed:
                return None

            payload = PredictionPayload.model_validate(row.prediction)
            award = self.points.score(real, payload, match.scorers)
            previous_live = int(row.live_points or 0)
            user_id = row.user_id
            user_name = row.user.name if row.user is not None else None

            # Claim before touching any total: an overlapping sweep that got
            # here first leaves zero rows to update.
            if not claim_final_settlement(db, prediction_id, previous_live):
                db.rollback()
                logger.debug("Prediction %s was settled by another sweep", prediction_id)
                return None

            for tournament_id in get_user_tournament_ids(db, user_id):
                apply_points_delta(
                    db,
                    tournament_id,
                    user_id,
                    round_number,
                    final_delta=award.points,
                    live_delta=-previous_live,
                )
            db.commit()

            logger.debug(
                "User %s: predicted %s vs real %s = %d points (%s)",
                user_id, list(payload.scores), list(real), award.points, award.label,
            )
            return PointsDetail(
                user_id=user_id,
                user_name=user_name,
                prediction_id=prediction_id,
                match_id=match.id,
                predicted=list(payload.scores),
                real=list(real),
                points_awarded=award.points,
                delta=award.points,
                point_type=award.label,
                kind=KIND_FINAL,
            )

    def _settle_live(self, match: Match, round_number: int, snapshots: List[PredictionSnapshot], result: SweepResult) -> int:
        current = match.score_pair
        if current is None:
            logger.debug("Live match %s has no score yet", match.id)
            return 0

        changed = 0
        for snap in snapshots:
            if snap.processed:
                continue
            try:
                detail = self._commit_live(snap.id, match, round_number, current)
            except Exception as exc:
                result.failures += 1
                logger.error("Error updating live points of prediction %s: %s", snap.id, exc)
                report_error("points", {"prediction_id": snap.id, "match_id": match.id, "live": True}, exc)
                continue
            if detail is None:
                continue
            result.live_count += 1
            result.user_points_details.append(detail)
            if detail.delta:
                changed += 1
        return changed

    def _commit_live(self, prediction_id: int, match: Match, round_number: int, current: tuple) -> Optional[PointsDetail]:
        with self.session_factory() as db:
            row = get_prediction_for_update(db, prediction_id)
            if row is None or row.processed:
                return None

            payload = PredictionPayload.model_validate(row.prediction)
            award = self.points.score(current, payload, match.scorers)
            previous_live = int(row.live_points or 0)
            delta = award.points - previous_live
            user_id = row.user_id
            user_name = row.user.name if row.user is not None else None

            if delta:
                if not claim_live_points(db, prediction_id, previous_live, award.points):
                    db.rollback()
                    logger.debug("Live points of prediction %s changed under us, skipping", prediction_id)
                    return None
                for tournament_id in get_user_tournament_ids(db, user_id):
                    apply_points_delta(db, tournament_id, user_id, round_number, live_delta=delta)
                db.commit()

            return PointsDetail(
                user_id=user_id,
                user_name=user_name,
                prediction_id=prediction_id,
                match_id=match.id,
                predicted=list(payload.scores),
                real=list(current),
                points_awarded=award.points,
                delta=delta,
                point_type=award.label,
                kind=KIND_LIVE,
            )

    def _clear_live_points(self, round_number: int, match_ids: List[str]) -> bool:
        # Nothing in play: provisional points of this round must be gone.
        with self.session_factory() as db:
            rounds_reset = reset_round_live_points(db, round_number)
            predictions_reset = zero_live_points_for_matches(db, match_ids)
            recompute_participant_live_points(db)
            db.commit()
        if not (rounds_reset or predictions_reset):
            return False
        logger.info(
            "Cleared residual live points of round %s (%d round rows, %d predictions)",
            round_number, rounds_reset, predictions_reset,
        )
        return True

    # --- probe ---

    def has_matches_today(self, now: Optional[datetime] = None) -> bool:
        now = now.astimezone(self.tz) if now and now.tzinfo else (now or datetime.now(self.tz))
        today = now.date()
        try:
            round_number = self.resolve_round()
            matches = self.provider.fetch_matches(round_number)
        except Exception as exc:
            logger.error("Error checking today's matches: %s", exc)
            report_error("points", {"operation": "has_matches_today"}, exc)
            return False

        has_games = any(parse_kickoff_date(m.start_time) == today for m in matches)
        logger.info("Matches today (%s, round %s)? %s", today.isoformat(), round_number, "YES" if has_games else "NO")
        return has_games
