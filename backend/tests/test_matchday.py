from datetime import date, datetime

from helpers import LIVE, SCHEDULED, FakeProvider, make_match

from prode.scrapers.kickoff import parse_kickoff, parse_kickoff_date, schedule_bucket
from prode.services.matchday import MatchdayService
from prode.services.prediction_cache import PredictionCache
from prode.services.round_calculator import RoundCalculator
from prode.services.round_repository import CurrentRoundRepository


def test_kickoff_helpers() -> None:
    assert parse_kickoff("15-03-2025 17:30") == datetime(2025, 3, 15, 17, 30)
    assert parse_kickoff_date("15-03-2025 17:30") == date(2025, 3, 15)
    assert parse_kickoff("31-02-2025 17:30") is None
    assert parse_kickoff("a confirmar") is None
    # 15 March 2025 is a Saturday
    assert schedule_bucket("15-03-2025 17:30") == "Sáb-17:30"


def test_round_repository_roundtrip(session_factory) -> None:
    repo = CurrentRoundRepository(session_factory)
    assert repo.get_current_round() is None
    assert repo.get_metadata()["value"] is None

    repo.save_current_round(6, updated_by="cron_job")
    repo.save_current_round(7, updated_by="manual")

    assert repo.get_current_round() == 7
    meta = repo.get_metadata()
    assert meta["updated_by"] == "manual"
    assert meta["updated_at"] is not None

    assert repo.delete_current_round() is True
    assert repo.delete_current_round() is False
    assert repo.get_current_round() is None


def _service(provider, session_factory, cache=None) -> MatchdayService:
    return MatchdayService(
        provider,
        cache or PredictionCache(provider, session_factory),
        CurrentRoundRepository(session_factory),
        RoundCalculator(provider),
    )


def test_current_round_is_calculated_when_not_stored(session_factory) -> None:
    provider = FakeProvider({1: [make_match("A", LIVE, [0, 0])]})
    out = _service(provider, session_factory).get_matchday()

    assert out["round"] == 1
    assert out["total_games"] == 1
    assert out["round_name"] == "Fecha"


def test_prediction_store_failure_degrades_to_zero_counts(session_factory) -> None:
    class BrokenCache:
        def get(self, round_number):
            raise RuntimeError("database is locked")

    provider = FakeProvider({3: [make_match("A", SCHEDULED), make_match("B", SCHEDULED)]})
    out = _service(provider, session_factory, cache=BrokenCache()).get_matchday(3)

    assert out["database_status"] == "unavailable"
    assert [g["total_predictions"] for g in out["games"]] == [0, 0]
