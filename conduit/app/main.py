from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from conduit.app.api.routing import router as routing_router
from conduit.app.core.config import settings
from conduit.app.core.logging import get_log_context, get_logger, setup_logging
from conduit.app.exceptions import ConfigValidationError, GatewayException
from conduit.app.middleware.request_id import RequestIdMiddleware, get_request_id


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    app = FastAPI(
        title="Conduit Gateway",
        description="Request contract validation and multi-provider route resolution",
        version="0.1.0",
    )

    # Middleware order matters: last added = first executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(routing_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "ok"}

    @app.exception_handler(ConfigValidationError)
    async def config_validation_handler(
        request: Request, exc: ConfigValidationError
    ) -> JSONResponse:
        """Handle invalid configs and return HTTP 400 with the offending location."""
        logger.info(
            f"Rejected config: {exc.message}",
            extra=get_log_context(
                request_id=get_request_id(request),
                target_path=exc.location,
                error_code=exc.error_code,
            ),
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(GatewayException)
    async def gateway_exception_handler(request: Request, exc: GatewayException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        The traceback is logged server-side and never returned to the client.
        """
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
            },
        )

        content: dict[str, Any] = {
            "error": "internal_error",
            "message": "Internal server error",
            "request_id": request_id,
        }
        if settings.debug:
            content["message"] = str(exc)
            content["exception_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()
