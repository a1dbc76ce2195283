from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session

from prode.core.game_config import MAX_ROUNDS
from prode.core.security import get_db
from prode.models.tournament import Tournament
from prode.schemas.rankings import RoundRankingEntryOut, TournamentRankingEntryOut
from prode.services.container import Services, get_services
from prode.services.rankings import get_round_ranking, get_tournament_ranking

router = APIRouter(prefix="/api/v1/tournaments", tags=["rankings"])


def _get_tournament_or_404(db: Session, tournament_id: int) -> Tournament:
    t = db.get(Tournament, tournament_id)
    if not t:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return t


@router.get("/{tournament_id}/ranking", response_model=list[TournamentRankingEntryOut])
def tournament_ranking(tournament_id: int, db: Session = Depends(get_db)):
    _get_tournament_or_404(db, tournament_id)
    return get_tournament_ranking(db, tournament_id)


@router.get("/{tournament_id}/rounds/{round_number}/ranking", response_model=list[RoundRankingEntryOut])
def round_ranking(
    tournament_id: int,
    round_number: int = Path(..., ge=1, le=MAX_ROUNDS),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    _get_tournament_or_404(db, tournament_id)
    return get_round_ranking(db, tournament_id, round_number, cache=services.cache)
