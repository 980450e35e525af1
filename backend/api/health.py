"""Health check endpoint — verifies backend + database connectivity."""

from fastapi import APIRouter, Request

from backend.core import database

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check backend status and connectivity to the database."""
    db_ok = database.check_connection(getattr(request.app.state, "engine", None))

    return {
        "status": "ok" if db_ok else "degraded",
        "services": {
            "database": "ok" if db_ok else "error",
        }
    }
