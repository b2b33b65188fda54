"""
Persephone - Main FastAPI Application
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import settings
from .api import chat_router
from .core.logging_config import setup_logging
from .core.maintenance import SessionSweeper
from .core.orchestrator import create_orchestrator, init_orchestrator
from .middleware import RequestLoggingMiddleware
from .storage import create_storage

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    setup_logging(settings)

    storage = create_storage(settings)
    orchestrator = create_orchestrator(settings, storage)
    init_orchestrator(orchestrator)

    sweeper = SessionSweeper(
        orchestrator.session_store,
        interval_minutes=settings.session_sweep_interval_minutes,
    )
    sweeper.start()

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Storage backend: {settings.storage_backend}")
    logger.info(f"Rate limit backend: {type(orchestrator.rate_limiter.backend).__name__}")
    logger.info(f"LLM provider: {settings.llm_provider}")
    if not orchestrator.is_configured:
        logger.warning("No LLM API key configured, /chat will answer 503")
    yield
    # Shutdown
    sweeper.shutdown()
    await storage.close()
    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Persona chat backend with per-visitor quotas and moderated history",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Add request logging middleware (after CORS)
if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(chat_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "storage": settings.storage_backend,
        "version": settings.app_version
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "persephone.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
