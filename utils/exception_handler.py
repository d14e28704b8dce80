import http
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

from logger import logger


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "ValidationError"
    NO_RATES_AVAILABLE = "NoRatesAvailable"
    PROVIDER_AUTH_FAILED = "ProviderAuthFailed"
    PROVIDER_UNAVAILABLE = "ProviderUnavailable"
    PROVIDER_REJECTED = "ProviderRejected"
    CONFIGURATION_ERROR = "ConfigurationError"
    INTERNAL_ERROR = "InternalError"


ERROR_KIND_STATUS = {
    ErrorKind.VALIDATION_ERROR: http.HTTPStatus.BAD_REQUEST,
    ErrorKind.NO_RATES_AVAILABLE: http.HTTPStatus.NOT_FOUND,
    ErrorKind.PROVIDER_AUTH_FAILED: http.HTTPStatus.BAD_GATEWAY,
    ErrorKind.PROVIDER_UNAVAILABLE: http.HTTPStatus.SERVICE_UNAVAILABLE,
    ErrorKind.PROVIDER_REJECTED: http.HTTPStatus.UNPROCESSABLE_ENTITY,
    ErrorKind.CONFIGURATION_ERROR: http.HTTPStatus.CONFLICT,
    ErrorKind.INTERNAL_ERROR: http.HTTPStatus.INTERNAL_SERVER_ERROR,
}


class ShippingError(Exception):
    """Base of every failure this service reports to its callers."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()

    @property
    def retryable(self) -> bool:
        return self.kind == ErrorKind.PROVIDER_UNAVAILABLE

    @property
    def http_status(self) -> int:
        return int(ERROR_KIND_STATUS[self.kind])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "provider": self.provider,
            "details": self.details,
            "timestamp": self.timestamp,
        }

    def __repr__(self):
        return f"{type(self).__name__}({self.message!r}, provider={self.provider!r})"


class ValidationError(ShippingError):
    kind = ErrorKind.VALIDATION_ERROR


class NoRatesAvailable(ShippingError):
    kind = ErrorKind.NO_RATES_AVAILABLE


class ProviderAuthFailed(ShippingError):
    kind = ErrorKind.PROVIDER_AUTH_FAILED


class ProviderUnavailable(ShippingError):
    kind = ErrorKind.PROVIDER_UNAVAILABLE


class ProviderRejected(ShippingError):
    kind = ErrorKind.PROVIDER_REJECTED


class ConfigurationError(ShippingError):
    kind = ErrorKind.CONFIGURATION_ERROR


class InternalError(ShippingError):
    kind = ErrorKind.INTERNAL_ERROR


ERROR_CLASSES = {
    cls.kind: cls
    for cls in (
        ValidationError,
        NoRatesAvailable,
        ProviderAuthFailed,
        ProviderUnavailable,
        ProviderRejected,
        ConfigurationError,
        InternalError,
    )
}


def error_from_kind(kind: ErrorKind, message: str, **kwargs) -> ShippingError:
    return ERROR_CLASSES[ErrorKind(kind)](message, **kwargs)


# format the validation errors into our desired output
def format_validation_errors(errors: List[dict]) -> Dict:
    formatted_errors = {}

    for error in errors:
        # Extract the field name and error message
        field = error["loc"][-1] if len(error["loc"]) > 0 else "Unknown"
        message = error["msg"]

        formatted_errors.setdefault(str(field), []).append(message)

    return {
        "data": {"kind": ErrorKind.VALIDATION_ERROR.value, "fields": formatted_errors},
        "message": "Validation error occurred.",
        "status": False,
    }


def handle_validation_error(request: Request, exc: PydanticValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content=format_validation_errors(exc.errors()))


async def shipping_error_handler(request: Request, exc: ShippingError) -> JSONResponse:
    logger.error(f"{exc.kind.value} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.http_status,
        content={"status": False, "message": exc.message, "data": exc.to_dict()},
    )


# Custom internal server error handler
async def custom_http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:
    if exc.status_code == 500:
        logger.error(f"Internal server error: {exc.detail}")
        return JSONResponse(
            status_code=500,
            content={
                "detail": "An internal server error occurred. Please try again later."
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
