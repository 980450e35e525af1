"""TradeCalc backend — FastAPI application entry point.

Initializes the database on startup and registers API routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.core import database
from backend.core.config import settings
from backend.api import health, calculations

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database on startup, dispose of the engine on shutdown."""
    logger.info("Starting TradeCalc backend...")

    engine = database.create_db_engine()
    app.state.engine = engine
    app.state.session_factory = database.create_session_factory(engine)

    # Schema creation failure is not fatal: /api/health reports it
    try:
        database.init_db(engine)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    logger.info("TradeCalc backend ready")
    yield

    # Shutdown
    logger.info("Shutting down TradeCalc backend...")
    engine.dispose()
    logger.info("TradeCalc backend stopped")


app = FastAPI(
    title="TradeCalc",
    version="0.1.0",
    description="Formula-driven calculated columns over uploaded CSV trading data.",
    lifespan=lifespan,
)

app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(calculations.router, prefix="/api/calculations", tags=["calculations"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.backend_host, port=settings.backend_port)
