# prode/services/matchday.py
import logging
from typing import Optional

from prode.scrapers.promiedos import PromiedosClient
from prode.services.prediction_cache import PredictionCache
from prode.services.round_calculator import RoundCalculator
from prode.services.round_repository import CurrentRoundRepository

logger = logging.getLogger(__name__)

DB_AVAILABLE = "available"
DB_UNAVAILABLE = "unavailable"


class MatchdayService:
    """Read side of a round: provider matches plus how many predictions each has."""

    def __init__(
        self,
        provider: PromiedosClient,
        cache: PredictionCache,
        rounds: CurrentRoundRepository,
        calculator: RoundCalculator,
    ):
        self.provider = provider
        self.cache = cache
        self.rounds = rounds
        self.calculator = calculator

    def get_current_round(self) -> int:
        try:
            committed = self.rounds.get_current_round()
        except Exception as exc:
            logger.warning("Could not read current round config: %s", exc)
            committed = None

        if committed is not None:
            return committed

        logger.info("No current round stored, calculating it")
        return self.calculator.calculate_current_round()

    def get_matchday(self, round_number: Optional[int] = None) -> dict:
        if round_number is None:
            round_number = self.get_current_round()

        # provider errors propagate: without matches there is nothing to show
        matches = self.provider.fetch_matches(round_number)

        database_status = DB_AVAILABLE
        try:
            predictions = self.cache.get(round_number)
        except Exception as exc:
            logger.warning("Predictions unavailable for round %s: %s", round_number, exc)
            predictions = {}
            database_status = DB_UNAVAILABLE

        games = []
        for m in matches:
            game = m.model_dump()
            game["total_predictions"] = len(predictions.get(m.id, []))
            games.append(game)

        round_name = matches[0].stage_round_name if matches else ""
        return {
            "round": round_number,
            "round_name": round_name or f"Fecha {round_number}",
            "games": games,
            "total_games": len(games),
            "total_predictions": sum(g["total_predictions"] for g in games),
            "database_status": database_status,
        }
