# prode/crud/crud_prediction.py
from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from prode.models.prediction import Prediction


def get_predictions_for_matches(db: Session, match_ids: Iterable[str]) -> list[Prediction]:
    # One query for a whole round instead of one per match
    ids = list(match_ids)
    if not ids:
        return []
    return (
        db.query(Prediction)
        .options(joinedload(Prediction.user))
        .filter(Prediction.match_id.in_(ids))
        .order_by(Prediction.created_at.desc(), Prediction.id.desc())
        .all()
    )


def get_prediction_for_update(db: Session, prediction_id: int) -> Optional[Prediction]:
    return (
        db.query(Prediction)
        .filter(Prediction.id == prediction_id)
        .with_for_update()
        .one_or_none()
    )


def claim_final_settlement(db: Session, prediction_id: int, previous_live: int) -> bool:
    # SQLite ignores FOR UPDATE; the WHERE clause is what keeps two sweeps
    # from settling the same prediction.
    result = db.execute(
        update(Prediction)
        .where(
            Prediction.id == prediction_id,
            Prediction.processed.is_(False),
            Prediction.live_points == previous_live,
        )
        .values(processed=True, live_points=0)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def claim_live_points(db: Session, prediction_id: int, previous_live: int, live_points: int) -> bool:
    result = db.execute(
        update(Prediction)
        .where(
            Prediction.id == prediction_id,
            Prediction.processed.is_(False),
            Prediction.live_points == previous_live,
        )
        .values(live_points=live_points)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def count_predictions_by_match(db: Session, match_ids: Iterable[str]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for p in get_predictions_for_matches(db, match_ids):
        counts[p.match_id] = counts.get(p.match_id, 0) + 1
    return counts


def zero_live_points_for_matches(db: Session, match_ids: Iterable[str]) -> int:
    ids = list(match_ids)
    if not ids:
        return 0
    result = db.execute(
        update(Prediction)
        .where(
            Prediction.match_id.in_(ids),
            Prediction.processed.is_(False),
            Prediction.live_points != 0,
        )
        .values(live_points=0)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def reset_all_predictions(db: Session) -> int:
    result = db.execute(
        update(Prediction)
        .values(processed=False, live_points=0)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
