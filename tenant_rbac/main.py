import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from tenant_rbac.api.v1.services import get_provisioning_service
from tenant_rbac.core.bootstrap import bootstrap_app
from tenant_rbac.core.config import settings
from tenant_rbac.core.middlewares import (
    limiter,
    rate_limit_exceeded_handler,
    request_logging_middleware,
    security_headers_middleware,
)
from tenant_rbac.core.models import RBACError
from tenant_rbac.core.schemas import ApiResponse
from tenant_rbac.db import DatabaseManager

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown: the schema is created and the
    deployment-wide permission catalog seeded before the first request, the
    engine pool is released on shutdown.
    """
    logger.info("Starting application...")
    db_manager: DatabaseManager = app.state.db_manager

    logger.info("Initializing database...")
    await db_manager.init_db()
    async with db_manager.async_session_factory() as session:
        await get_provisioning_service().seed_catalog(session)
    logger.info("Database ready.")

    yield

    logger.info("Shutting down application...")
    await db_manager.dispose()
    logger.info("Database engine disposed.")


async def rbac_error_handler(request: Request, exc: RBACError):
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(ApiResponse(
            status_code=exc.status_code,
            error=exc.code,
            detail=exc.message,
            data=exc.data,
        )),
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(ApiResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error="ValidationError",
            detail="Request validation failed.",
            data=exc.errors(),
        )),
    )


async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler with security considerations.
    """
    tb = traceback.format_exc()

    # Log the full error server-side
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    response_content = ApiResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error=exc.__class__.__name__,
        detail=str(exc),
    ).model_dump()

    # Only include traceback in development
    if not settings.is_production:
        response_content["data"] = {"traceback": tb}

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=response_content,
    )


def create_app(db_manager: Optional[DatabaseManager] = None) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        version=settings.VERSION,
        lifespan=lifespan,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc"
    )
    app.state.db_manager = db_manager or DatabaseManager(settings.DATABASE_URL)

    # Add rate limiter state to app
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "Content-Type"],
        max_age=600,  # Cache preflight requests for 10 minutes
    )

    # Security headers middleware
    app.middleware("http")(security_headers_middleware)

    # Request logging middleware
    app.middleware("http")(request_logging_middleware)

    # Exception handlers
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(RBACError, rbac_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    bootstrap_app(app)

    # Health check endpoint (useful for monitoring)
    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": settings.VERSION}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0",
                port=8000,
                log_level="info"
        )
