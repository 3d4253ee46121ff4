import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from allo.db import GetDb
from allo.modules.notify.dispatcher import GetChannelBackend
from allo.modules.tasks.supervisor import GetSupervisor

router = APIRouter(prefix="/api", tags=["health"])
logger = logging.getLogger("core.health")


@router.get("/health")
async def api_health() -> dict:
    logger.debug("health check ok")
    return {"status": "ok"}


@router.get("/health/db")
def api_health_db(db: Session = Depends(GetDb)) -> dict:
    try:
        db.execute(text("SELECT 1")).scalar()
        logger.debug("db check ok")
        return {"status": "ok"}
    except Exception:  # noqa: BLE001
        logger.exception("db check failed")
        return {"status": "error", "detail": "database unavailable"}


@router.get("/health/runtime")
def api_health_runtime() -> dict:
    supervisor = GetSupervisor()
    return {
        "status": "ok",
        "channel_backend": GetChannelBackend().Name,
        "scheduler_running": bool(supervisor and supervisor.IsRunning),
        "scheduler_restarts": supervisor.Restarts if supervisor else 0,
    }
