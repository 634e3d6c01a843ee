"""TELEMON — FastAPI Application Entry Point.

Telecom metrics monitor: evaluates configured metrics against control limits
and serves cached snapshots to the dashboard.
"""

import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from telemon.config import settings
from telemon.database import engine, init_db, test_connection
from telemon.api.metrics_routes import router as metrics_router
from telemon.api.config_routes import router as config_router
from telemon.core.logging import get_logger
from telemon.services import Services, build_services, get_services

logger = get_logger("main")


IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("TELEMON starting up...")
    logger.info(f"Environment: {'SERVERLESS' if IS_SERVERLESS else 'LOCAL'}")
    if test_connection():
        try:
            init_db()
        except Exception as e:
            logger.error(f"Table creation failed: {e}")
    else:
        logger.error("Local store NOT connected — offline fallback unavailable")

    services = build_services(engine, seed_demo=settings.seed_demo_metrics)
    app.state.services = services

    if not IS_SERVERLESS:
        configs = await services.store.list()
        interval = await services.store.get_refresh_interval()
        services.scheduler.start(configs, interval)
    yield
    await services.close()
    logger.info("TELEMON shut down")


app = FastAPI(
    title="TELEMON",
    description="Telecom metrics monitor — current values, control-limit status and trends for configurable metrics.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(metrics_router)
app.include_router(config_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "telemon",
        "version": "1.0.0",
    }


@app.get("/health/cache", tags=["System"])
async def cache_health(services: Services = Depends(get_services)):
    """Cache counters and refresh job state."""
    scheduler = services.scheduler
    return {
        "cache": services.cache.stats(),
        "scheduler": {
            "running": scheduler.scheduler.running,
            "interval_ms": scheduler.interval_ms,
            "metrics": len(scheduler.configs),
            "last_batch_size": len(scheduler.latest_snapshots),
            "last_run_at": scheduler.last_run_at.isoformat() if scheduler.last_run_at else None,
        },
    }
