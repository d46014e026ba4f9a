"""FastAPI application server."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import JSONResponse, Response

from complaint_engine.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from complaint_engine.api.routes import router
from complaint_engine.config import get_settings
from complaint_engine.engine import ComplaintPipeline
from complaint_engine.exceptions import ComplaintEngineError, ProcessingError
from complaint_engine.observability.logging import configure_logging
from complaint_engine.observability.telemetry import (
    TelemetryConfig,
    init_telemetry,
    shutdown_telemetry,
)

logger = logging.getLogger(__name__)

# Global state
_pipeline: ComplaintPipeline | None = None


def get_pipeline() -> ComplaintPipeline | None:
    """Get the global pipeline instance."""
    return _pipeline


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Initializes and shuts down:
    - Structured logging
    - OpenTelemetry (tracing + metrics)
    - Complaint pipeline (database pool, catalog cache, store)
    """
    global _pipeline

    settings = get_settings()

    configure_logging(
        level=settings.log_level,
        json_format=settings.log_json,
        service_name=settings.service_name,
    )

    logger.info("Starting Complaint Engine...")

    # Production config warnings (don't fail startup; log only)
    if settings.service_environment == "production":
        if settings.api_key in ("", "dev-api-key"):
            logger.warning("Production: API_KEY is default or empty. Set a strong API_KEY.")
        if settings.storage_backend == "memory":
            logger.warning("Production: STORAGE_BACKEND=memory; complaints are not persisted.")
        if "*" in settings.cors_origins:
            logger.warning(
                "Production: CORS_ORIGINS allows all origins (*). Restrict to your front-end domains."
            )

    if settings.enable_tracing or settings.enable_metrics:
        init_telemetry(
            TelemetryConfig(
                service_name=settings.service_name,
                service_version=settings.api_version,
                environment=settings.service_environment,
                otlp_endpoint=settings.otlp_endpoint,
                enable_tracing=settings.enable_tracing,
                enable_metrics=settings.enable_metrics,
            )
        )

    # Initialize pipeline and attach to app state for dependency injection
    _pipeline = ComplaintPipeline(settings=settings)
    await _pipeline.initialize()
    app.state.pipeline = _pipeline

    logger.info("Complaint Engine ready")

    yield

    logger.info("Shutting down Complaint Engine...")

    if _pipeline:
        await _pipeline.shutdown()
        logger.info("Complaint pipeline shutdown complete")
    _pipeline = None

    shutdown_telemetry()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description=(
            "Restaurant complaint classification API. "
            "Scores sentiment and urgency, categorizes and maps complaints to branches."
        ),
        lifespan=lifespan,
    )

    # Domain exception handler: map ComplaintEngineError to JSON response
    @app.exception_handler(ComplaintEngineError)
    async def complaint_engine_error_handler(request: Request, exc: ComplaintEngineError):
        content = {"detail": exc.detail}
        if isinstance(exc, ProcessingError):
            content["stage"] = exc.stage
        return JSONResponse(status_code=exc.status_code, content=content)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers (X-Content-Type-Options, X-Frame-Options)
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(router)

    # Readiness probe; no auth required
    @app.get("/ready", include_in_schema=False)
    async def ready():
        """Readiness: 200 if the catalog is loaded and the store is reachable, 503 otherwise."""
        pipeline = get_pipeline()
        checks = await pipeline.check_ready() if pipeline else {"catalog": False, "store": False}
        payload = {name: "ok" if ok else "error" for name, ok in checks.items()}
        if all(checks.values()):
            return {"status": "ready", **payload}
        return JSONResponse(status_code=503, content={"status": "not_ready", **payload})

    # Prometheus metrics endpoint
    if settings.enable_metrics:

        @app.get("/metrics", include_in_schema=False)
        async def metrics():
            """Prometheus metrics endpoint."""
            return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "complaint_engine.api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
