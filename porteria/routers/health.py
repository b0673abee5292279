# porteria/routers/health.py
"""
System health check endpoint.
Returns status of backend + local DB + reservations DB + central server reachability.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from porteria.context import AppContext
from porteria.database import get_context, get_db
from porteria.utils import clock

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """
    Returns:
    - Backend status
    - Local database connectivity (the only dependency that degrades the station)
    - Reservations database: ok / unreachable / disabled
    - Central server: ok / unreachable
    """
    result = {
        "status": "ok",
        "timestamp": clock.now().isoformat(),
        "backend": "ok",
        "porteria_id": ctx.settings.STATION_ID,
        "database": "unknown",
        "reservations": "disabled",
        "central": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except SQLAlchemyError as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    if ctx.reservations.available:
        reachable = ctx.reservations.ping()
        result["reservations"] = "ok" if reachable else "unreachable"

    reachable = ctx.sync.ping_central()
    result["central"] = "ok" if reachable else "unreachable"

    return result
