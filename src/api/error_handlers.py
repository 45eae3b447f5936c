"""Centralized error handling for the API."""

from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ApiError:
    """Standard error codes returned by the API."""

    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    UNKNOWN_ASSET = "UNKNOWN_ASSET"
    INVALID_FILTER = "INVALID_FILTER"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse:
    """Standardized error response format."""

    def __init__(
        self,
        error_code: str,
        message: str,
        details: dict[str, Any] | list[str] | None = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        """
        Initialize error response.

        Args:
            error_code: Standard error code from ApiError
            message: Human-readable error message
            details: Additional error details (field-specific errors, etc.)
            status_code: HTTP status code
        """
        self.error_code = error_code
        self.message = message
        self.details = details
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        response = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=self.status_code,
            detail=self.to_dict(),
        )


def create_validation_error_response(errors: list[dict[str, Any]]) -> ErrorResponse:
    """
    Create standardized validation error response from request validation errors.

    Args:
        errors: List of validation errors from Pydantic

    Returns:
        ErrorResponse with field-specific validation errors
    """
    field_errors = {}
    for error in errors:
        field_path = ".".join(str(loc) for loc in error["loc"])
        field_errors[field_path] = error["msg"]

    return ErrorResponse(
        error_code=ApiError.VALIDATION_ERROR,
        message="Validation failed for one or more fields",
        details=field_errors,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


def create_token_not_found_error(symbol: str) -> ErrorResponse:
    return ErrorResponse(
        error_code=ApiError.TOKEN_NOT_FOUND,
        message=f"No market data for symbol {symbol.upper()}",
        details={"symbol": symbol.upper()},
        status_code=status.HTTP_404_NOT_FOUND,
    )


def create_unknown_asset_error(asset_id: str, known: list[str]) -> ErrorResponse:
    return ErrorResponse(
        error_code=ApiError.UNKNOWN_ASSET,
        message=f"Asset '{asset_id}' is not tracked",
        details={"asset_id": asset_id, "tracked_assets": known},
        status_code=status.HTTP_404_NOT_FOUND,
    )


def create_invalid_filter_error(news_filter: str, allowed: tuple[str, ...]) -> ErrorResponse:
    return ErrorResponse(
        error_code=ApiError.INVALID_FILTER,
        message=f"Unknown news filter '{news_filter}'",
        details={"allowed": list(allowed)},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def create_service_unavailable_error(message: str = "Service is starting up") -> ErrorResponse:
    return ErrorResponse(
        error_code=ApiError.SERVICE_UNAVAILABLE,
        message=message,
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI validation errors with standardized format."""
    error_response = create_validation_error_response(exc.errors())
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.to_dict(),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return ErrorResponse bodies as-is instead of nesting them under 'detail'."""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = {"error": ApiError.INTERNAL_ERROR, "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
