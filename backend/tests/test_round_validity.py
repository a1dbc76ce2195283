from helpers import FINISHED, SCHEDULED, make_match, make_round, placeholder_round

from prode.services.round_validity import (
    has_distributed_schedules,
    has_realistic_schedule,
    has_valid_start_time,
    has_valid_teams,
    is_round_valid,
)
from prode.schemas.matches import Team


def test_placeholder_kickoffs_are_not_valid_start_times() -> None:
    assert has_valid_start_time("15-03-2025 17:00") is True
    assert has_valid_start_time("") is False
    assert has_valid_start_time("   ") is False
    assert has_valid_start_time("01-01-2025 17:00") is False
    assert has_valid_start_time("20-03-2025 00:00") is False
    assert has_valid_start_time("20-03-2025 23:59") is False


def test_realistic_schedule_window() -> None:
    assert has_realistic_schedule("15-03-2025 13:30") is True
    assert has_realistic_schedule("15-03-2025 14:00") is True
    assert has_realistic_schedule("15-03-2025 22:45") is True
    assert has_realistic_schedule("15-03-2025 23:00") is True

    assert has_realistic_schedule("15-03-2025 13:15") is False
    assert has_realistic_schedule("15-03-2025 12:00") is False
    assert has_realistic_schedule("15-03-2025 23:15") is False
    assert has_realistic_schedule("15-03-2025 17:10") is False
    assert has_realistic_schedule("a confirmar") is False


def test_teams_need_id_name_and_short_name() -> None:
    full = Team(id="1", name="Boca Juniors", short_name="BOC")
    assert has_valid_teams([full, Team(id="2", name="River Plate", short_name="RIV")]) is True
    assert has_valid_teams([full, Team(id="2", name="River Plate", short_name="")]) is False
    assert has_valid_teams([full, Team(id=None, name="River Plate", short_name="RIV")]) is False
    assert has_valid_teams([full]) is False
    assert has_valid_teams([]) is False


def test_single_match_counts_as_distributed() -> None:
    assert has_distributed_schedules([make_match("1", SCHEDULED)]) is True


def test_clustered_kickoffs_are_not_distributed() -> None:
    same = [make_match(str(i), SCHEDULED, start_time="15-03-2025 17:00") for i in range(4)]
    assert has_distributed_schedules(same) is False

    # 3 of 4 in one slot is 75%, above the 70% ceiling
    mostly = same[:3] + [make_match("x", SCHEDULED, start_time="16-03-2025 19:00")]
    assert has_distributed_schedules(mostly) is False


def test_real_round_is_valid() -> None:
    assert is_round_valid(make_round(3, [FINISHED] * 4 + [SCHEDULED] * 4)) is True


def test_placeholder_round_is_not_valid() -> None:
    assert is_round_valid(placeholder_round(9)) is False
    assert is_round_valid([]) is False


def test_valid_share_threshold() -> None:
    matches = make_round(2, [SCHEDULED] * 4)

    # 3 of 4 valid: exactly 75% passes
    broken = matches[0].model_copy(update={"teams": []})
    assert is_round_valid([broken] + matches[1:]) is True

    # 2 of 4 valid fails
    broken2 = matches[1].model_copy(update={"teams": []})
    assert is_round_valid([broken, broken2] + matches[2:]) is False
