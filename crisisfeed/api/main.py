"""FastAPI application for crisisfeed."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crisisfeed.api.rate_limit import RateLimiter, enforce_rate_limit
from crisisfeed.api.routers import analysis, reference
from crisisfeed.api.schemas.response import HealthResponse
from crisisfeed.api.services.analysis_service import AnalysisService
from crisisfeed.config import Settings, get_settings
from crisisfeed.logger import get_logger

logger = get_logger(__name__)

INVALID_REQUEST_MESSAGE = "Missing required parameters"


def create_app(settings: Optional[Settings] = None, service: Optional[AnalysisService] = None) -> FastAPI:
    """Build the application with its long-lived service and rate limiter."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Crisis Feed API",
        description="LLM-generated crisis feed with profit opportunities and trading signals",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.analysis_service = service or AnalysisService(settings)
    app.state.rate_limiter = RateLimiter(settings.rate_limit_max_requests, settings.rate_limit_window)

    # CORS middleware - allow requests from the dashboard dev servers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    rate_limited = [Depends(enforce_rate_limit)]
    app.include_router(analysis.router, prefix="/api", tags=["analysis"], dependencies=rate_limited)
    app.include_router(reference.router, prefix="/api", tags=["reference"], dependencies=rate_limited)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # The default 422 body echoes the caller's input back
        logger.warning(f"Rejected invalid request to {request.url.path}: {len(exc.errors())} validation errors")
        return JSONResponse(status_code=400, content={"error": INVALID_REQUEST_MESSAGE})

    @app.on_event("startup")
    async def startup_event():
        """Initialize application on startup."""
        logger.info(f"Starting Crisis Feed API server (provider: {settings.model_provider})")
        logger.info("API documentation available at /docs")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown."""
        logger.info("Shutting down Crisis Feed API server")
        await app.state.analysis_service.close()

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint."""
        return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc))

    return app


app = create_app()
