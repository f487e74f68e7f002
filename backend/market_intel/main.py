"""Market Intel FastAPI Application.

Serves the dashboard datasets assembled by the acquisition layer.
"""

import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .models import async_session_maker, create_session_maker, init_db
from .models.database import DATABASE_URL
from .routers import dashboard, health
from .services.cache_store import CacheStore
from .services.config import config_service, ConfigValidationException
from .services.logging_service import configure_logging
from .services.orchestrator import DashboardOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup: Validate configuration
    try:
        config_service.load_and_validate()
        settings = config_service.acquisition_settings()
    except ConfigValidationException as e:
        print(f"FATAL: {e}")
        print("Server cannot start with invalid configuration.")
        sys.exit(1)

    configure_logging(
        config_service.get("logging.level", "INFO"),
        config_service.get("logging.format"),
    )
    logger.info("Configuration validated successfully")

    # Initialize database
    database_url = config_service.get("database.url", DATABASE_URL)
    engine = None
    session_maker = async_session_maker
    if database_url != DATABASE_URL:
        engine, session_maker = create_session_maker(database_url)
    await init_db(engine)
    logger.info("Database initialized")

    # Cached snapshot first, network second
    orchestrator = DashboardOrchestrator.from_settings(settings, cache=CacheStore(session_maker))
    has_cache = await orchestrator.restore_from_cache()
    logger.info("Cached datasets restored" if has_cache else "No cached datasets found")
    dashboard.set_orchestrator(orchestrator)
    orchestrator.load()

    yield

    # Shutdown: stop any dataset fetches still running
    orchestrator.cancel()
    dashboard.set_orchestrator(None)
    if engine is not None:
        await engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Market Intel API",
    description="Commodity, supplier, economic, news and weather dashboard API",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])


@app.get("/")
async def root():
    """Root endpoint redirect to docs."""
    return {"message": "Market Intel API", "docs": "/docs"}
