"""
FastAPI Application

Read API over the loaded warehouse: margins, the consistency audit and
health checks.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware
import structlog

from supermarket_dw.config import get_settings
from supermarket_dw.config.logging import configure_logging
from supermarket_dw.database.connection import close_database, init_database
from supermarket_dw.serving.api.middleware import RequestLoggingMiddleware
from supermarket_dw.serving.api.routes import audit_router, health_router, margins_router

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()
    logger.info("Starting warehouse API", environment=settings.app_env)

    await init_database()

    yield

    logger.info("Shutting down...")
    await close_database()


app = FastAPI(
    title="Supermarket Sales Warehouse API",
    description="Margins and consistency diagnostics over the sales warehouse",
    version=settings.version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(health_router, prefix="/api/v1", tags=["Health"])
app.include_router(margins_router, prefix="/api/v1/margins", tags=["Margins"])
app.include_router(audit_router, prefix="/api/v1/audit", tags=["Audit"])


@app.get("/api/v1/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "environment": settings.app_env,
        "documentation": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
