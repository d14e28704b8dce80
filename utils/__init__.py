from utils.exception_handler import (
    ErrorKind,
    ShippingError,
    ValidationError,
    NoRatesAvailable,
    ProviderAuthFailed,
    ProviderUnavailable,
    ProviderRejected,
    ConfigurationError,
    InternalError,
)

__all__ = [
    "ErrorKind",
    "ShippingError",
    "ValidationError",
    "NoRatesAvailable",
    "ProviderAuthFailed",
    "ProviderUnavailable",
    "ProviderRejected",
    "ConfigurationError",
    "InternalError",
]
