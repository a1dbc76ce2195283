# prode/services/rankings.py
import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.orm import Session, joinedload

from prode.models.tournament import RoundPoints, TournamentParticipant
from prode.services.prediction_cache import PredictionCache

logger = logging.getLogger(__name__)


def _first_submissions(cache: Optional[PredictionCache], round_number: int) -> Dict[int, datetime]:
    # earliest prediction of each user among the round's matches
    if cache is None:
        return {}
    try:
        predictions = cache.get(round_number)
    except Exception as exc:
        logger.warning("No prediction timestamps for round %s, ties fall back to row age: %s", round_number, exc)
        return {}

    first: Dict[int, datetime] = {}
    for snapshots in predictions.values():
        for s in snapshots:
            if s.user_id not in first or s.created_at < first[s.user_id]:
                first[s.user_id] = s.created_at
    return first


def get_round_ranking(
    db: Session,
    tournament_id: int,
    round_number: int,
    cache: Optional[PredictionCache] = None,
) -> list[dict]:
    """Round standings: final + live points desc, earliest submission first on ties."""
    rows = (
        db.query(RoundPoints)
        .options(joinedload(RoundPoints.user))
        .filter(RoundPoints.tournament_id == tournament_id, RoundPoints.round_number == round_number)
        .all()
    )
    first = _first_submissions(cache, round_number)

    def sort_key(r: RoundPoints):
        return (-(r.points + r.live_points), first.get(r.user_id, r.created_at), r.user_id)

    out = []
    for position, r in enumerate(sorted(rows, key=sort_key), start=1):
        submitted = first.get(r.user_id)
        out.append(
            {
                "position": position,
                "user_id": r.user_id,
                "user_name": r.user.name if r.user is not None else None,
                "points": r.points,
                "live_points": r.live_points,
                "total_points": r.points + r.live_points,
                "first_prediction_at": submitted.isoformat() if submitted else None,
            }
        )
    return out


def get_tournament_ranking(db: Session, tournament_id: int) -> list[dict]:
    rows = (
        db.query(TournamentParticipant)
        .options(joinedload(TournamentParticipant.user))
        .filter(TournamentParticipant.tournament_id == tournament_id)
        .all()
    )
    rows.sort(key=lambda p: (-(p.points + p.live_points), p.joined_at, p.user_id))

    return [
        {
            "position": position,
            "user_id": p.user_id,
            "user_name": p.user.name if p.user is not None else None,
            "points": p.points,
            "live_points": p.live_points,
            "total_points": p.points + p.live_points,
            "joined_at": p.joined_at.isoformat() if p.joined_at else None,
        }
        for position, p in enumerate(rows, start=1)
    ]
