import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from prode.core.errors import ProviderError
from prode.core.security import require_admin
from prode.services.container import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


class InvalidateIn(BaseModel):
    match_ids: list[str]


@router.post("/matchday/refresh")
def refresh_current_round(admin=Depends(require_admin), services: Services = Depends(get_services)):
    try:
        return services.scheduler.refresh_current_round(updated_by="manual")
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@router.post("/points/process")
def process_points_now(admin=Depends(require_admin), services: Services = Depends(get_services)):
    try:
        result = services.scheduler.execute_sweep_now()
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return result.as_dict()


@router.post("/points/activate")
def activate_sweep(admin=Depends(require_admin), services: Services = Depends(get_services)):
    changed = services.scheduler.activate_sweep(reason="manual")
    return {"ok": True, "changed": changed, **services.scheduler.sweep_status()}


@router.post("/points/deactivate")
def deactivate_sweep(admin=Depends(require_admin), services: Services = Depends(get_services)):
    changed = services.scheduler.deactivate_sweep(reason="manual")
    return {"ok": True, "changed": changed, **services.scheduler.sweep_status()}


@router.post("/points/sync")
def sync_sweep(admin=Depends(require_admin), services: Services = Depends(get_services)):
    return services.scheduler.sync_sweep_state()


@router.get("/scheduler/status")
def scheduler_status(admin=Depends(require_admin), services: Services = Depends(get_services)):
    return services.scheduler.status()


@router.post("/jobs/{job_name}/run")
def run_job(job_name: str, admin=Depends(require_admin), services: Services = Depends(get_services)):
    try:
        outcome = services.scheduler.execute_job(job_name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown job: {job_name}")
    # audited runs never raise; a None outcome means the run failed (see the ledger)
    return {"ok": outcome is not None, "job_name": job_name, "outcome": outcome}


@router.post("/cache/invalidate")
def invalidate_cache(payload: InvalidateIn, admin=Depends(require_admin), services: Services = Depends(get_services)):
    rounds = services.cache.invalidate(payload.match_ids)
    return {"ok": True, "rounds": rounds}


@router.get("/cache/stats")
def cache_stats(admin=Depends(require_admin), services: Services = Depends(get_services)):
    return services.cache.stats()
