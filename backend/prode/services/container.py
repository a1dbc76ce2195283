# prode/services/container.py
#
# One instance of each long-lived collaborator per process. The scheduler,
# the API routes and the operator scripts all go through get_services() so
# they share the same prediction cache.
from dataclasses import dataclass
from functools import lru_cache

from prode.db.session import SessionLocal
from prode.scrapers.promiedos import PromiedosClient
from prode.services.execution_ledger import ExecutionLedger
from prode.services.matchday import MatchdayService
from prode.services.prediction_cache import PredictionCache
from prode.services.round_calculator import RoundCalculator
from prode.services.round_repository import CurrentRoundRepository
from prode.services.scheduler import MatchdayScheduler
from prode.services.scoring import ScoringEngine


@dataclass
class Services:
    provider: PromiedosClient
    rounds: CurrentRoundRepository
    calculator: RoundCalculator
    cache: PredictionCache
    engine: ScoringEngine
    ledger: ExecutionLedger
    matchday: MatchdayService
    scheduler: MatchdayScheduler


def build_services(provider=None, session_factory=SessionLocal) -> Services:
    provider = provider or PromiedosClient()
    rounds = CurrentRoundRepository(session_factory)
    calculator = RoundCalculator(provider)
    cache = PredictionCache(provider, session_factory)
    engine = ScoringEngine(provider, cache, calculator, session_factory)
    ledger = ExecutionLedger(session_factory)
    return Services(
        provider=provider,
        rounds=rounds,
        calculator=calculator,
        cache=cache,
        engine=engine,
        ledger=ledger,
        matchday=MatchdayService(provider, cache, rounds, calculator),
        scheduler=MatchdayScheduler(calculator, engine, ledger, session_factory, cache=cache),
    )


@lru_cache
def get_services() -> Services:
    return build_services()
