"""Error envelope and exception handlers shared by all routes."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.schemas import ErrorResponse

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache",
    "Access-Control-Allow-Origin": "*",
}


class ApiError(Exception):
    """Raised by routes to produce a ``{"status": "error", "reason": ...}`` response."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(reason)
        self.status_code = status_code
        self.reason = reason


def error_response(status_code: int, reason: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(reason=reason).model_dump(),
        headers=NO_CACHE_HEADERS,
    )


async def _handle_api_error(_request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc.status_code, exc.reason)


async def _handle_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        reason = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        reason = "Malformed request."
    return error_response(status.HTTP_400_BAD_REQUEST, reason)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _handle_api_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
