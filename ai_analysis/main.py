"""
LogAllot - AI Analysis Service Main Application
===============================================

FastAPI application exposing the multi-agent log analysis engine.

Responsibilities:
- Analyze raw error logs with several LLM personas in parallel
- Report which providers are configured
- Test provider connectivity
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ai_analysis.config import get_settings
from ai_analysis.api.routes import router as api_router
from ai_analysis.core.pipeline import get_analysis_pipeline, shutdown_analysis_pipeline
from shared.utils.logging import setup_logging, get_logger, set_correlation_id


settings = get_settings()

# Initialize logging
setup_logging(
    service_name=settings.service_name,
    log_level=settings.log_level,
    json_output=settings.log_json
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.
    """
    logger.info(
        f"Starting {settings.service_name} v{settings.service_version}",
        extra={
            "version": settings.service_version,
            "default_provider": settings.default_provider
        }
    )

    get_analysis_pipeline()
    logger.info("Analysis pipeline initialized")

    yield

    # Shutdown
    logger.info("Shutting down AI analysis service...")
    await shutdown_analysis_pipeline()
    logger.info("AI analysis service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="LogAllot - AI Analysis Service",
    description="Multi-agent root-cause analysis of error logs across LLM providers",
    version=settings.service_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Middleware to extract or generate correlation ID."""
    correlation_id = request.headers.get("X-Correlation-ID")
    if not correlation_id:
        correlation_id = str(uuid.uuid4())

    set_correlation_id(correlation_id)
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id

    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(
        f"Unhandled exception: {exc}",
        extra={"path": request.url.path},
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "detail": str(exc) if settings.debug else None
        }
    )


# Health check
@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.service_version
    }


@app.get("/ready", tags=["health"])
async def readiness_check():
    """Readiness check endpoint."""
    pipeline = get_analysis_pipeline()
    active = await pipeline.dispatcher.resolver.resolve()

    return {
        "status": "ready",
        "service": settings.service_name,
        "active_provider": active.provider.value,
        "provider_configured": bool(active.api_key)
    }


# Include API routes
app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ai_analysis.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
