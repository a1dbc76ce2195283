from datetime import datetime, timedelta

from helpers import FINISHED, FakeProvider, add_prediction, make_match, seed_tournament, seed_users

from prode.models.tournament import RoundPoints, TournamentParticipant
from prode.services.prediction_cache import PredictionCache
from prode.services.rankings import get_round_ranking, get_tournament_ranking

T0 = datetime(2025, 3, 1, 10, 0)


def test_round_ranking_ties_go_to_earliest_submission(db, session_factory) -> None:
    provider = FakeProvider({4: [make_match("m1", FINISHED, [1, 0]), make_match("m2", FINISHED, [0, 0])]})
    ana, bruno, caro = seed_users(db, "Ana", "Bruno", "Caro")
    t = seed_tournament(db, [ana, bruno, caro])

    add_prediction(db, ana, "m1", [1, 0], created_at=T0 + timedelta(hours=3))
    add_prediction(db, bruno, "m2", [0, 0], created_at=T0 + timedelta(hours=5))
    add_prediction(db, bruno, "m1", [2, 0], created_at=T0 + timedelta(hours=1))
    add_prediction(db, caro, "m1", [0, 0], created_at=T0)

    db.add_all(
        [
            RoundPoints(tournament_id=t.id, user_id=ana.id, round_number=4, points=3, live_points=0),
            RoundPoints(tournament_id=t.id, user_id=bruno.id, round_number=4, points=1, live_points=2),
            RoundPoints(tournament_id=t.id, user_id=caro.id, round_number=4, points=0, live_points=0),
            # other round, ignored
            RoundPoints(tournament_id=t.id, user_id=caro.id, round_number=3, points=9, live_points=0),
        ]
    )
    db.commit()

    ranking = get_round_ranking(db, t.id, 4, cache=PredictionCache(provider, session_factory))

    assert [r["user_name"] for r in ranking] == ["Bruno", "Ana", "Caro"]
    assert [r["position"] for r in ranking] == [1, 2, 3]
    assert ranking[0]["total_points"] == 3
    assert ranking[0]["first_prediction_at"] == (T0 + timedelta(hours=1)).isoformat()


def test_round_ranking_without_cache_uses_row_age(db) -> None:
    ana, bruno = seed_users(db, "Ana", "Bruno")
    t = seed_tournament(db, [ana, bruno])
    db.add(RoundPoints(tournament_id=t.id, user_id=bruno.id, round_number=1, points=1, created_at=T0))
    db.add(RoundPoints(tournament_id=t.id, user_id=ana.id, round_number=1, points=1, created_at=T0 + timedelta(minutes=1)))
    db.commit()

    ranking = get_round_ranking(db, t.id, 1)
    assert [r["user_name"] for r in ranking] == ["Bruno", "Ana"]


def test_round_ranking_survives_provider_errors(db, session_factory) -> None:
    (ana,) = seed_users(db, "Ana")
    t = seed_tournament(db, [ana])
    db.add(RoundPoints(tournament_id=t.id, user_id=ana.id, round_number=9, points=2))
    db.commit()

    ranking = get_round_ranking(db, t.id, 9, cache=PredictionCache(FakeProvider(), session_factory))
    assert ranking[0]["points"] == 2
    assert ranking[0]["first_prediction_at"] is None


def test_tournament_ranking_counts_live_points_and_ties_by_join(db) -> None:
    ana, bruno, caro = seed_users(db, "Ana", "Bruno", "Caro")
    t = seed_tournament(db, [ana, bruno, caro], joined=[T0 + timedelta(days=2), T0, T0 + timedelta(days=1)])

    values = {ana.id: (5, 0), bruno.id: (4, 1), caro.id: (6, 0)}
    for user_id, (points, live) in values.items():
        db.query(TournamentParticipant).filter_by(tournament_id=t.id, user_id=user_id).update(
            {"points": points, "live_points": live}
        )
    db.commit()
    db.expire_all()

    ranking = get_tournament_ranking(db, t.id)

    assert [r["user_name"] for r in ranking] == ["Caro", "Bruno", "Ana"]
    assert [r["total_points"] for r in ranking] == [6, 5, 5]
