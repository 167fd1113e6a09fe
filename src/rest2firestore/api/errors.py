from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from rest2firestore.errors import (
    DeserializationError,
    InvalidPathShape,
    NotFound,
    Rest2FirestoreError,
    SerializationError,
    StoreReadError,
    StoreWriteError,
)

logger = logging.getLogger(__name__)


class ErrorDetail(BaseModel):
    code: str = Field(description="Error code")
    message: str = Field(description="Error message")
    details: list[dict[str, Any]] = Field(default_factory=list, description="Additional details")


class ErrorResponse(BaseModel):
    error: ErrorDetail


@dataclass(frozen=True)
class APIError(Exception):
    status_code: int
    code: str
    message: str
    details: list[dict[str, Any]] | None = None


class BadRequestError(APIError):
    def __init__(self, message: str, *, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(400, "bad_request", message, details)


class UnauthorizedError(APIError):
    def __init__(self, message: str = "Authentication failed.") -> None:
        super().__init__(401, "unauthorized", message)


class ForbiddenError(APIError):
    def __init__(self, message: str = "Permission denied.") -> None:
        super().__init__(403, "forbidden", message)


class NotFoundError(APIError):
    def __init__(self, message: str) -> None:
        super().__init__(404, "not_found", message)


class UnprocessableEntityError(APIError):
    def __init__(self, message: str, *, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(422, "validation_error", message, details)


class InternalServerError(APIError):
    def __init__(self, message: str = "Internal server error.") -> None:
        super().__init__(500, "internal_error", message)


class StoreError(APIError):
    def __init__(self, message: str) -> None:
        super().__init__(503, "store_error", message)


def api_error_from_store_error(exc: Rest2FirestoreError) -> APIError:
    message = str(exc)
    if isinstance(exc, InvalidPathShape):
        return BadRequestError(message, details=[{"segments": list(exc.segments)}])
    if isinstance(exc, NotFound):
        return NotFoundError(message)
    if isinstance(exc, (DeserializationError, SerializationError)):
        return UnprocessableEntityError(message)
    if isinstance(exc, (StoreReadError, StoreWriteError)):
        return StoreError(message)
    return InternalServerError(message)


def build_error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    payload = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details or []))
    return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))


def _api_error_response(exc: APIError) -> JSONResponse:
    return build_error_response(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIError)
    async def _handle_api_error(_: Request, exc: APIError) -> JSONResponse:
        return _api_error_response(exc)

    @app.exception_handler(Rest2FirestoreError)
    async def _handle_store_error(_: Request, exc: Rest2FirestoreError) -> JSONResponse:
        api_error = api_error_from_store_error(exc)
        if api_error.status_code >= 500:
            logger.warning("Store operation failed: %s", exc)
        return _api_error_response(api_error)

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {
                "loc": list(error.get("loc", ())),
                "msg": error.get("msg", ""),
                "type": error.get("type", ""),
            }
            for error in exc.errors()
        ]
        return build_error_response(
            status_code=422,
            code="validation_error",
            message="Request validation failed.",
            details=details,
        )

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        status_code = exc.status_code
        code_map = {
            400: "bad_request",
            401: "unauthorized",
            403: "forbidden",
            404: "not_found",
            405: "method_not_allowed",
            422: "validation_error",
            500: "internal_error",
            503: "store_error",
        }
        code = code_map.get(status_code, "http_error")
        message = str(exc.detail) if exc.detail else "HTTP error."
        return build_error_response(status_code=status_code, code=code, message=message)

    @app.exception_handler(Exception)
    async def _handle_unexpected_error(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception", exc_info=exc)
        return build_error_response(
            status_code=500,
            code="internal_error",
            message="Internal server error.",
        )
