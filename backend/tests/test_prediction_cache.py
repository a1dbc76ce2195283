import dataclasses

import pytest
from helpers import FINISHED, LIVE, SCHEDULED, FakeProvider, add_prediction, make_round, seed_users

from prode.core.errors import ProviderError
from prode.core.game_config import FALLBACK_INVALIDATION_ROUNDS
from prode.services.prediction_cache import PredictionCache


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(
        {
            1: make_round(1, [FINISHED] * 4, [[1, 0]] * 4),
            2: make_round(2, [LIVE, SCHEDULED, SCHEDULED, SCHEDULED], [[0, 0], None, None, None]),
        }
    )


def test_round_is_loaded_once_and_grouped_by_match(db, session_factory, provider) -> None:
    ana, bruno = seed_users(db, "Ana", "Bruno")
    add_prediction(db, ana, "r2m0", [1, 0])
    add_prediction(db, bruno, "r2m0", [0, 0])
    add_prediction(db, ana, "r2m1", [2, 2])
    add_prediction(db, ana, "r1m0", [1, 0])

    cache = PredictionCache(provider, session_factory)
    first = cache.get(2)
    second = cache.get(2)

    assert provider.calls == [2]
    assert {k: len(v) for k, v in first.items()} == {"r2m0": 2, "r2m1": 1}
    assert first.keys() == second.keys()
    assert {s.user_name for s in first["r2m0"]} == {"Ana", "Bruno"}


def test_snapshots_are_read_only(db, session_factory, provider) -> None:
    (ana,) = seed_users(db, "Ana")
    add_prediction(db, ana, "r2m0", [1, 0])

    snap = PredictionCache(provider, session_factory).get(2)["r2m0"][0]
    with pytest.raises(dataclasses.FrozenInstanceError):
        snap.processed = True


def test_invalidate_hits_round_of_match_without_predictions(db, session_factory, provider) -> None:
    (ana,) = seed_users(db, "Ana")
    add_prediction(db, ana, "r2m0", [1, 0])

    cache = PredictionCache(provider, session_factory)
    cache.get(2)
    provider.calls.clear()

    # r2m3 has no predictions but belongs to the cached round
    assert cache.invalidate(["r2m3"]) == [2]
    assert provider.calls == []
    assert cache.stats()["total_entries"] == 0


def test_invalidate_with_cold_cache_asks_the_provider(session_factory, provider) -> None:
    cache = PredictionCache(provider, session_factory, max_rounds=3)
    assert cache.invalidate(["r1m2"]) == [1]
    assert provider.calls == [1, 2, 3]


def test_invalidate_falls_back_when_provider_is_down(session_factory) -> None:
    provider = FakeProvider()
    cache = PredictionCache(provider, session_factory, max_rounds=3)
    assert cache.invalidate(["whatever"]) == list(FALLBACK_INVALIDATION_ROUNDS)


def test_invalidate_nothing() -> None:
    cache = PredictionCache(FakeProvider(), session_factory=None)
    assert cache.invalidate([]) == []


def test_load_racing_an_invalidation_is_not_stored(db, session_factory, provider) -> None:
    class RacingProvider(FakeProvider):
        cache = None

        def fetch_matches(self, round_number):
            matches = super().fetch_matches(round_number)
            if len(self.calls) == 1:
                # a prediction write lands while the round is being loaded
                self.cache.invalidate_round(round_number)
            return matches

    racing = RacingProvider(provider.rounds)
    cache = PredictionCache(racing, session_factory)
    racing.cache = cache

    cache.get(2)
    assert cache.stats()["total_entries"] == 0

    cache.get(2)
    assert cache.stats()["total_entries"] == 1
    assert racing.calls == [2, 2]


def test_provider_error_propagates_from_get(session_factory) -> None:
    cache = PredictionCache(FakeProvider(), session_factory)
    with pytest.raises(ProviderError):
        cache.get(7)


def test_stats(db, session_factory, provider) -> None:
    ana, bruno = seed_users(db, "Ana", "Bruno")
    add_prediction(db, ana, "r1m0", [1, 0])
    add_prediction(db, bruno, "r1m1", [0, 0])

    cache = PredictionCache(provider, session_factory)
    cache.get(1)
    cache.get(2)
    stats = cache.stats()

    assert stats["total_entries"] == 2
    first = stats["entries"][0]
    assert (first["round"], first["matches"], first["matches_with_predictions"], first["predictions"]) == (1, 4, 2, 2)

    cache.invalidate_all()
    assert cache.stats()["total_entries"] == 0


def test_get_after_invalidate_sees_new_writes(db, session_factory, provider) -> None:
    ana, bruno = seed_users(db, "Ana", "Bruno")
    add_prediction(db, ana, "r2m1", [1, 0])

    cache = PredictionCache(provider, session_factory)
    assert len(cache.get(2)["r2m1"]) == 1

    add_prediction(db, bruno, "r2m1", [0, 0])
    assert len(cache.get(2)["r2m1"]) == 1

    cache.invalidate(["r2m1"])
    assert len(cache.get(2)["r2m1"]) == 2
