from fastapi import APIRouter, Depends, HTTPException, Path

from prode.core.errors import ProviderError
from prode.core.game_config import MAX_ROUNDS
from prode.services.container import Services, get_services

router = APIRouter(prefix="/api/v1/matchday", tags=["matchday"])


@router.get("/current")
def current_matchday(services: Services = Depends(get_services)):
    try:
        return services.matchday.get_matchday()
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@router.get("/{round_number}")
def matchday_by_round(
    round_number: int = Path(..., ge=1, le=MAX_ROUNDS),
    services: Services = Depends(get_services),
):
    try:
        return services.matchday.get_matchday(round_number)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
