"""
Trelliso API — FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    from api.deps import get_dashboard_store
    from dashboard.store import DataLoadError

    logger.info("Trelliso API starting up", version=settings.app_version)
    try:
        await get_dashboard_store().reload()
    except DataLoadError as e:
        logger.error("initial_load_failed", error=str(e))
    yield
    logger.info("Trelliso API shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Supply-chain analytics dashboard data service",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and register routers
from api.v1.routers import dashboard, data_source, proxy, recommendations

app.include_router(dashboard.router)
app.include_router(data_source.router)
app.include_router(proxy.router)
app.include_router(recommendations.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers."""
    return {"status": "healthy", "version": settings.app_version}
