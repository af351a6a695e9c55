"""Map domain errors and request validation failures to JSON responses."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from celiac_ledger.core.errors import (
    IncompleteInputError,
    InvalidInputError,
    LedgerError,
    NotFoundError,
)
from celiac_ledger.core.logging import get_logger

logger = get_logger(__name__)

ERROR_STATUS_MAP: dict[type[LedgerError], int] = {
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    IncompleteInputError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}

HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


def status_for(exc: LedgerError) -> int:
    """HTTP status for a domain error; unknown subclasses are client errors."""
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_MAP:
            return ERROR_STATUS_MAP[error_type]
    return status.HTTP_400_BAD_REQUEST


def _validation_message(errors: list[dict]) -> str:
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    field = ".".join(
        str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")
    )
    return f"{field}: {message}" if field else message


def _invalid_input(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=InvalidInputError(message).to_dict(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the error envelope handlers on the app."""

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        status_code = status_for(exc)
        logger.warning(
            "request_failed",
            code=exc.code,
            error=exc.message,
            status_code=status_code,
            path=request.url.path,
            method=request.method,
        )
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = _validation_message(list(exc.errors()))
        logger.warning(
            "request_validation_failed",
            error=message,
            error_count=len(exc.errors()),
            path=request.url.path,
            method=request.method,
        )
        return _invalid_input(message)

    @app.exception_handler(ValidationError)
    async def model_validation_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        message = _validation_message(list(exc.errors()))
        logger.warning("model_validation_failed", error=message, path=request.url.path)
        return _invalid_input(message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": str(exc.detail),
                "code": HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
            },
            headers=getattr(exc, "headers", None),
        )
