import logging

from fastapi import Depends, FastAPI

from prode.core.config import settings
from prode.core.sentry import init_sentry
from prode.db.init_db import init_db
from prode.api.routes.matchday import router as matchday_router
from prode.api.routes.rankings import router as rankings_router
from prode.api.routes.admin import router as admin_router
from prode.api.routes.monitoring import router as monitoring_router
from prode.services.container import Services, get_services

logger = logging.getLogger(__name__)

app = FastAPI(title="Prode")
app.include_router(matchday_router)
app.include_router(rankings_router)
app.include_router(admin_router)
app.include_router(monitoring_router)


@app.on_event("startup")
def on_startup():
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    init_sentry()
    init_db()

    if settings.SCHEDULER_ENABLED:
        get_services().scheduler.start()
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")


@app.on_event("shutdown")
def on_shutdown():
    services = get_services()
    services.scheduler.shutdown()
    services.provider.close()


@app.get("/health")
def health(services: Services = Depends(get_services)):
    return {"ok": True, "scheduler": services.scheduler.sweep_status()}
