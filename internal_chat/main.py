"""
Internal Chat API Server

Entry point for the FastAPI application.
"""

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from internal_chat.api import router as internal_chat_router
from internal_chat.core.config import get_settings
from internal_chat.core.logging_config import configure_logging
from internal_chat.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from internal_chat.core.redis import close_redis

settings = get_settings()
log = structlog.get_logger()


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error(
        "database.error",
        path=request.url.path,
        method=request.method,
        error=type(exc).__name__,
    )
    # Statement text and bound parameters carry user data
    log.debug("database.error_detail", path=request.url.path, detail=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "DATABASE_ERROR",
                "message": "A database error occurred.",
                "status": 500,
            }
        },
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Internal Chat",
        description="Organization-scoped channels, topics and messages for internal communication.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware (order matters, outermost first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token"],
    )

    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    app.include_router(internal_chat_router, prefix="/api/internal-chat")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check endpoint for startup probes."""
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("Internal chat starting", debug=settings.debug)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Internal chat shutting down")
        await close_redis()

    return app


app = create_app()


def run() -> None:
    """CLI entry point: serve the API with uvicorn."""
    uvicorn.run(
        "internal_chat.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
