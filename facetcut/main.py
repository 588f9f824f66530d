"""
Facet Cut Service - FastAPI Application
Main entry point for the diamond (EIP-2535) deployment and upgrade service.
Plans, validates and submits facet cuts against deployed diamonds.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from facetcut.core.config import is_production, settings
from facetcut.core.exceptions import DiamondException, get_exception_status_code
from facetcut.core.logging import get_logger, log_error, log_request, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    setup_logging()
    logger.info("Facet Cut service starting", **settings.get_evm_config())
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="Diamond facet cut planning, validation and upgrade API",
        version="1.0.0",
        docs_url="/docs" if not is_production() else None,
        redoc_url="/redoc" if not is_production() else None,
        openapi_url="/openapi.json" if not is_production() else None,
        lifespan=lifespan,
    )

    # Trusted host middleware
    if is_production():
        logger.info(
            f"TrustedHost middleware enabled with hosts: {settings.ALLOWED_HOSTS}"
        )
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.ALLOWED_HOSTS,
        )

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        log_request(
            request.method,
            str(request.url.path),
            response.status_code,
            round(time.perf_counter() - started, 4),
        )
        return response

    @app.exception_handler(DiamondException)
    async def diamond_exception_handler(request: Request, exc: DiamondException):
        status_code = get_exception_status_code(exc)
        if status_code >= 500:
            log_error(exc, {"path": request.url.path})
        else:
            logger.warning(exc.message, error_code=exc.error_code, path=request.url.path)
        return JSONResponse(
            status_code=status_code,
            content={
                "success": False,
                "error_code": exc.error_code,
                "message": exc.message,
                "details": exc.details,
            },
        )

    from facetcut.api.routers import diamond_router

    app.include_router(
        diamond_router.router, prefix="/api/v1/diamond", tags=["Diamond Cuts"]
    )

    @app.get("/")
    async def root():
        """Root endpoint for health check."""
        return {
            "message": "Facet Cut API",
            "version": "1.0.0",
            "status": "healthy",
            "features": [
                "Selector Computation",
                "Loupe Snapshots",
                "Facet Deployment",
                "Manual Diamond Cuts",
                "Diff-Based Facet Upgrades",
            ],
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "chain_id": settings.EVM_CHAIN_ID,
            "features_enabled": {
                "signer": bool(settings.EVM_PRIVATE_KEY),
                "default_diamond": bool(settings.DIAMOND_ADDRESS),
                "revalidate_before_submit": settings.REVALIDATE_BEFORE_SUBMIT,
            },
        }

    return app


# Create the FastAPI app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "facetcut.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
