"""
Exception handlers.

Every handled failure is returned as {"detail": ..., "kind": ...} where kind
is one of the ErrorKind values.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.config.logging import rest_api_logger as logger
from shared.utils.exceptions import AppException, ErrorKind


def _error_response(status_code: int, detail: str, kind: ErrorKind, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "kind": kind.value},
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return _error_response(exc.status_code, exc.detail, exc.kind, exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed requests are invalid input (400), not 422."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    detail = f"{location}: {message}" if location else message
    logger.warning("Request validation failed", path=request.url.path, errors=len(errors))
    return _error_response(status.HTTP_400_BAD_REQUEST, detail, ErrorKind.INVALID_INPUT)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
