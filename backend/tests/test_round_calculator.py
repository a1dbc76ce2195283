from helpers import FINISHED, LIVE, SCHEDULED, FakeProvider, make_round, placeholder_round

from prode.core.errors import ProviderError
from prode.services.round_calculator import RoundCalculator


def test_round_with_live_matches_is_current() -> None:
    provider = FakeProvider(
        {
            1: make_round(1, [FINISHED] * 4, [[1, 0]] * 4),
            2: make_round(2, [FINISHED, LIVE, SCHEDULED, SCHEDULED], [[2, 2], [0, 1], None, None]),
            3: make_round(3, [SCHEDULED] * 4),
        }
    )
    assert RoundCalculator(provider).calculate_current_round() == 2


def test_first_round_with_scheduled_matches_after_closed_round() -> None:
    provider = FakeProvider(
        {
            1: make_round(1, [FINISHED] * 4, [[1, 0]] * 4),
            2: make_round(2, [FINISHED, SCHEDULED, SCHEDULED, SCHEDULED], [[0, 0], None, None, None]),
        }
    )
    assert RoundCalculator(provider, max_rounds=4).calculate_current_round() == 2


def test_round_one_with_scheduled_matches_is_current() -> None:
    provider = FakeProvider({1: make_round(1, [SCHEDULED] * 4)})
    assert RoundCalculator(provider).calculate_current_round() == 1
    assert provider.calls == [1]


def test_placeholder_round_keeps_last_valid_round() -> None:
    provider = FakeProvider(
        {
            1: make_round(1, [FINISHED] * 4, [[1, 0]] * 4),
            2: make_round(2, [FINISHED] * 4, [[1, 1]] * 4),
            3: placeholder_round(3),
        }
    )
    assert RoundCalculator(provider).calculate_current_round() == 2


def test_all_rounds_finished_returns_last_one() -> None:
    provider = FakeProvider({n: make_round(n, [FINISHED] * 4, [[1, 0]] * 4) for n in (1, 2, 3)})
    assert RoundCalculator(provider, max_rounds=3).calculate_current_round() == 3


def test_error_on_early_round_is_skipped() -> None:
    provider = FakeProvider(
        {
            2: make_round(2, [FINISHED] * 4, [[1, 0]] * 4),
            3: make_round(3, [LIVE] * 4, [[0, 0]] * 4),
        }
    )
    provider.errors[1] = ProviderError("timeout")
    assert RoundCalculator(provider).calculate_current_round() == 3


def test_error_after_round_three_falls_back_to_last_valid() -> None:
    provider = FakeProvider({n: make_round(n, [FINISHED] * 4, [[1, 0]] * 4) for n in (1, 2, 3)})
    # round 4 does not exist on the provider yet
    assert RoundCalculator(provider).calculate_current_round() == 3
    assert provider.calls == [1, 2, 3, 4]


def test_empty_round_is_skipped() -> None:
    provider = FakeProvider(
        {
            1: make_round(1, [FINISHED] * 4, [[1, 0]] * 4),
            2: [],
            3: make_round(3, [LIVE] * 4, [[0, 0]] * 4),
        }
    )
    assert RoundCalculator(provider).calculate_current_round() == 3


def test_analyze_round_status_counts() -> None:
    provider = FakeProvider({5: make_round(5, [FINISHED, FINISHED, LIVE, SCHEDULED], [[1, 0], [2, 2], [0, 0], None])})
    a = RoundCalculator(provider).analyze_round_status(5)

    assert (a.total, a.finished, a.live, a.scheduled) == (4, 2, 1, 1)
    assert a.is_valid is True
    assert a.is_complete is False
    assert a.as_dict()["has_live_games"] is True
