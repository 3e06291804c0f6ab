"""FastAPI application entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mare_website.api import mares_router
from mare_website.config import get_settings
from mare_website.database import async_engine, ensure_schema
from mare_website.exceptions import MareWebsiteError
from mare_website.logging import configure_logging

settings = get_settings()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    shipper = configure_logging(settings)
    try:
        # A SchemaError here aborts startup
        await ensure_schema()
        logger.info("service_started", port=settings.port)
        yield
    finally:
        # Shutdown
        await async_engine.dispose()
        logger.info("service_stopped")
        if shipper is not None:
            shipper.shutdown()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Mare record service",
    lifespan=lifespan,
)


@app.exception_handler(MareWebsiteError)
async def service_error_handler(request: Request, exc: MareWebsiteError):
    """Map service exceptions onto HTTP responses."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Register API routers
app.include_router(mares_router, prefix="/api")
