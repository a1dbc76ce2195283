from typing import Optional

from fastapi import APIRouter, Depends, Query

from prode.core.security import require_admin
from prode.services.container import Services, get_services

router = APIRouter(prefix="/api/v1/admin/cron", tags=["monitoring"])


@router.get("/stats")
def execution_stats(
    job_name: Optional[str] = None,
    hours: int = Query(default=24, ge=1, le=24 * 30),
    admin=Depends(require_admin),
    services: Services = Depends(get_services),
):
    return services.ledger.get_execution_stats(job_name, hours)


@router.get("/history")
def execution_history(
    job_name: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=500),
    admin=Depends(require_admin),
    services: Services = Depends(get_services),
):
    return services.ledger.get_execution_history(job_name, limit)
