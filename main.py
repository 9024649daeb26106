# ============================================================================
# STUDIO WORKFLOW CORE - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - FastAPI application entry point
# PURPOSE: HTTP surface over the workflow orchestrator
# CREATED: 19 OCT 2026
# ============================================================================
"""
Studio Workflow Core Main Application

FastAPI application that:
1. Provides the HTTP API for jobs, chains and packages
2. Manages the database pool and the notification publisher

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from __version__ import __version__, BUILD_DATE, EPOCH
from core.config import get_defaults
from repositories.database import init_pool, close_pool, get_pool
from services import NotificationFanout
from orchestrator import WorkflowOrchestrator
from messaging import get_publisher, close_publisher
from api.routes import router, set_services

# Configure logging using our structured logging system
from core.logging import configure_logging, get_logger

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes services on startup, cleans up on shutdown.
    """
    logger.info(f"Starting Studio Workflow Core v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")

    pool = await init_pool()
    logger.info("Database pool initialized")

    # Optional: deploy schema on startup (for development)
    if os.environ.get("AUTO_BOOTSTRAP_SCHEMA", "").lower() == "true":
        from core.schema import PydanticToSQL
        try:
            async with pool.connection() as conn:
                await PydanticToSQL(schema_name=get_defaults().database.schema).execute_async(conn)
            logger.info("Schema bootstrap completed")
        except Exception as e:
            logger.warning(f"Schema bootstrap failed (may already exist): {e}")

    publisher = None
    if get_defaults().notifications.push_enabled:
        publisher = await get_publisher()
        logger.info("Notification publisher connected")

    fanout = NotificationFanout(pool, publisher=publisher)
    orchestrator = WorkflowOrchestrator(pool, fanout=fanout)
    set_services(orchestrator=orchestrator, fanout=fanout)
    logger.info("Workflow orchestrator initialized")

    yield

    logger.info("Shutting down Studio Workflow Core...")

    await close_publisher()
    await close_pool()

    logger.info("Studio Workflow Core stopped")


app = FastAPI(
    title="Studio Workflow Core",
    description=f"Epoch {EPOCH} creative-production workflow orchestration",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")


@app.get("/livez", tags=["Health"])
async def livez():
    """Liveness: the process is up."""
    return {"status": "alive"}


@app.get("/health", tags=["Health"])
async def health():
    """Readiness: the database answers a trivial query."""
    database_ok = True
    try:
        pool = await get_pool()
        async with pool.connection() as conn:
            await conn.execute("SELECT 1")
    except Exception as e:
        logger.warning(f"Health check database probe failed: {e}")
        database_ok = False
    return {
        "status": "healthy" if database_ok else "degraded",
        "version": __version__,
        "database_connected": database_ok,
        "push_enabled": get_defaults().notifications.push_enabled,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Studio Workflow Core",
        "version": __version__,
        "epoch": EPOCH,
        "build_date": BUILD_DATE,
        "status": "running",
        "docs": "/docs",
    }


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
