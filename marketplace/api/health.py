"""
Health endpoints.

Liveness has no dependencies; readiness probes the database and the tables
access decisions read from. Neither exposes connection details.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from marketplace.core.database import get_engine

logger = logging.getLogger("marketplace")

router = APIRouter(tags=["health"])

REQUIRED_TABLES = [
    "profiles",
    "consumer_subscriptions",
    "vendors",
    "id_verifications",
]


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")

        inspector = inspect(engine)
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
        if missing:
            detail = f"missing tables: {', '.join(missing)}"
            logger.warning(f"[readyz] {detail}")
            return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

        return {"status": "ok"}
    except (SQLAlchemyError, ValueError) as e:
        logger.error(f"[readyz] readiness check failed: {e.__class__.__name__}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
