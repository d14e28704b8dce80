"""
Translate anything a provider call can fail with into one ShippingError.
"""

import json
import xml.etree.ElementTree as ET
from typing import Any, Optional

import httpx

from utils.exception_handler import (
    ShippingError,
    ProviderAuthFailed,
    ProviderUnavailable,
    ProviderRejected,
    InternalError,
)


MESSAGE_KEYS = (
    "message",
    "error",
    "errors",
    "error_message",
    "errorMessage",
    "ErrorMessage",
    "remarks",
    "remark",
    "rmk",
    "reason",
    "description",
    "detail",
    "msg",
    "StatusInformation",
)

MAX_MESSAGE_LENGTH = 300


class MalformedResponse(ValueError):
    """A provider answered with a body that could not be understood."""


def _message_from_xml(text: str) -> Optional[str]:
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        return None

    wanted = {key.lower() for key in MESSAGE_KEYS}
    for element in root.iter():
        tag = element.tag.split("}")[-1].lower()
        if tag in wanted and element.text and element.text.strip():
            return element.text.strip()

    # DTDC style <FIELD name="strError" value="..."/>
    for element in root.iter():
        name = (element.get("name") or "").lower()
        if "error" in name and element.get("value"):
            return element.get("value")

    return None


def error_message_from_payload(body: Any) -> Optional[str]:
    """Pull a human readable message out of the usual provider error shapes."""
    if body is None:
        return None

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")

    if isinstance(body, str):
        text = body.strip()
        if not text:
            return None
        if text[0] in "{[":
            try:
                return error_message_from_payload(json.loads(text))
            except ValueError:
                pass
        if text.startswith("<"):
            message = _message_from_xml(text)
            if message:
                return message
        return text[:MAX_MESSAGE_LENGTH]

    if isinstance(body, dict):
        for key in MESSAGE_KEYS:
            if key in body and body[key] not in (None, "", [], {}):
                value = body[key]
                if isinstance(value, (dict, list)):
                    nested = error_message_from_payload(value)
                    if nested:
                        return nested
                    continue
                if isinstance(value, bool):
                    continue
                return str(value)[:MAX_MESSAGE_LENGTH]
        # Delhivery wraps per package remarks
        for key in ("packages", "data", "response", "result"):
            if isinstance(body.get(key), (dict, list)):
                nested = error_message_from_payload(body[key])
                if nested:
                    return nested
        return None

    if isinstance(body, list):
        for item in body:
            message = error_message_from_payload(item)
            if message:
                return message
        return None

    return str(body)[:MAX_MESSAGE_LENGTH]


def from_status(
    status_code: int, body: Any = None, provider: Optional[str] = None
) -> ShippingError:
    message = error_message_from_payload(body)
    details = {"statusCode": status_code}

    if status_code in (401, 403):
        return ProviderAuthFailed(
            message or "Provider rejected the credentials",
            provider=provider,
            details=details,
        )
    if status_code in (408, 429) or status_code >= 500:
        return ProviderUnavailable(
            message or f"Provider returned HTTP {status_code}",
            provider=provider,
            details=details,
        )
    if 400 <= status_code < 500:
        return ProviderRejected(
            message or f"Provider rejected the request (HTTP {status_code})",
            provider=provider,
            details=details,
        )
    return InternalError(
        f"Unexpected provider status {status_code}", provider=provider, details=details
    )


def normalize_error(
    exc: BaseException, provider: Optional[str] = None, idempotent: bool = True
) -> ShippingError:
    if isinstance(exc, ShippingError):
        if exc.provider is None:
            exc.provider = provider
        return exc

    if isinstance(exc, httpx.TimeoutException):
        return ProviderUnavailable(
            "Provider request timed out",
            provider=provider,
            details={"reason": type(exc).__name__},
        )

    if isinstance(exc, httpx.HTTPStatusError):
        return from_status(exc.response.status_code, exc.response.text, provider)

    if isinstance(exc, httpx.RequestError):
        return ProviderUnavailable(
            "Could not reach provider",
            provider=provider,
            details={"reason": type(exc).__name__, "error": str(exc)},
        )

    if isinstance(exc, (MalformedResponse, json.JSONDecodeError, ET.ParseError)):
        if idempotent:
            return ProviderUnavailable(
                "Provider returned a malformed response",
                provider=provider,
                details={"error": str(exc)},
            )
        # a write may have gone through, never report it as transient
        return InternalError(
            "Provider returned a malformed response, outcome unknown",
            provider=provider,
            details={"error": str(exc)},
        )

    return InternalError(
        "Unexpected error while calling provider",
        provider=provider,
        details={"reason": type(exc).__name__, "error": str(exc)},
    )
