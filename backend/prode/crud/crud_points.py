# prode/crud/crud_points.py
#
# Point totals live in two places that must agree:
#   round_points(tournament, user, round).points   -- per round
#   tournament_participants(tournament, user).points  -- running total
# Every change goes through apply_points_delta so both move in the same
# transaction. Increments are done in SQL (col = col + delta) so concurrent
# sweeps never overwrite each other.
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from prode.models.tournament import RoundPoints, TournamentParticipant


def get_user_tournament_ids(db: Session, user_id: int) -> list[int]:
    rows = (
        db.query(TournamentParticipant.tournament_id)
        .filter(TournamentParticipant.user_id == user_id)
        .all()
    )
    return [tid for (tid,) in rows]


def _increment_round_row(
    db: Session, tournament_id: int, user_id: int, round_number: int, final_delta: int, live_delta: int
) -> int:
    result = db.execute(
        update(RoundPoints)
        .where(
            RoundPoints.tournament_id == tournament_id,
            RoundPoints.user_id == user_id,
            RoundPoints.round_number == round_number,
        )
        .values(
            points=RoundPoints.points + final_delta,
            live_points=RoundPoints.live_points + live_delta,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def apply_points_delta(
    db: Session,
    tournament_id: int,
    user_id: int,
    round_number: int,
    *,
    final_delta: int = 0,
    live_delta: int = 0,
) -> None:
    """Add deltas to the round row (created on first use) and the running total.

    Zero deltas still create the round row, so a settled user shows up in
    the round ranking. Does not commit: callers group it with the
    prediction update.
    """
    if not _increment_round_row(db, tournament_id, user_id, round_number, final_delta, live_delta):
        # first points of this user in this round; a concurrent insert fails on
        # uq_round_points and the whole prediction update is retried next sweep
        db.add(
            RoundPoints(
                tournament_id=tournament_id,
                user_id=user_id,
                round_number=round_number,
                points=final_delta,
                live_points=live_delta,
            )
        )
        db.flush()

    db.execute(
        update(TournamentParticipant)
        .where(
            TournamentParticipant.tournament_id == tournament_id,
            TournamentParticipant.user_id == user_id,
        )
        .values(
            points=TournamentParticipant.points + final_delta,
            live_points=TournamentParticipant.live_points + live_delta,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )


def reset_round_live_points(db: Session, round_number: int) -> int:
    result = db.execute(
        update(RoundPoints)
        .where(RoundPoints.round_number == round_number, RoundPoints.live_points != 0)
        .values(live_points=0, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def recompute_participant_live_points(db: Session) -> None:
    """Running live totals = sum of the stored per-round live points."""
    per_round_sum = (
        select(func.coalesce(func.sum(RoundPoints.live_points), 0))
        .where(
            RoundPoints.tournament_id == TournamentParticipant.tournament_id,
            RoundPoints.user_id == TournamentParticipant.user_id,
        )
        .scalar_subquery()
    )
    db.execute(
        update(TournamentParticipant)
        .values(live_points=per_round_sum)
        .execution_options(synchronize_session=False)
    )


def reset_all_points(db: Session) -> None:
    db.execute(
        update(RoundPoints)
        .values(points=0, live_points=0)
        .execution_options(synchronize_session=False)
    )
    db.execute(
        update(TournamentParticipant)
        .values(points=0, live_points=0)
        .execution_options(synchronize_session=False)
    )
