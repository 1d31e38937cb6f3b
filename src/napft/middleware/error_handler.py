"""Global error handlers: every failure is rendered in the response envelope."""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from napft.errors import MarketplaceError
from napft.query.envelope import error_body

logger = structlog.get_logger()

_HTTP_ERROR_CODES = {
    400: "ValidationError",
    403: "Unauthorized",
    404: "NotFound",
    405: "MethodNotAllowed",
    409: "InvalidState",
}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("marketplace_error", path=request.url.path, error=exc.message, error_code=exc.error_code)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.error_code, jsonable_encoder(exc.details)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        error = _HTTP_ERROR_CODES.get(exc.status_code, "InternalError" if exc.status_code >= 500 else "HttpError")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), error),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed input is a 400 like any other validation failure."""
        return JSONResponse(
            status_code=400,
            content=error_body("Validation error", "ValidationError", jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions. Always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", "InternalError"),
        )
