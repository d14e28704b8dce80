import json
import xml.etree.ElementTree as ET

import httpx
import pytest

from shipping_partner.error_normalizer import (
    MalformedResponse,
    error_message_from_payload,
    from_status,
    normalize_error,
)
from utils.exception_handler import (
    ErrorKind,
    ProviderRejected,
    error_from_kind,
)


@pytest.mark.parametrize(
    "status_code, kind",
    [
        (400, ErrorKind.PROVIDER_REJECTED),
        (404, ErrorKind.PROVIDER_REJECTED),
        (401, ErrorKind.PROVIDER_AUTH_FAILED),
        (403, ErrorKind.PROVIDER_AUTH_FAILED),
        (408, ErrorKind.PROVIDER_UNAVAILABLE),
        (429, ErrorKind.PROVIDER_UNAVAILABLE),
        (500, ErrorKind.PROVIDER_UNAVAILABLE),
        (503, ErrorKind.PROVIDER_UNAVAILABLE),
    ],
)
def test_status_codes(status_code, kind):
    error = from_status(status_code, None, "dtdc")
    assert error.kind == kind
    assert error.provider == "dtdc"
    assert error.details["statusCode"] == status_code


def test_only_unavailable_is_retryable():
    assert from_status(503).retryable
    assert not from_status(400).retryable
    assert not from_status(401).retryable


@pytest.mark.parametrize(
    "body, message",
    [
        ({"message": "Invalid pincode"}, "Invalid pincode"),
        ({"error": {"detail": "Weight exceeds limit"}}, "Weight exceeds limit"),
        ({"errors": ["first", "second"]}, "first"),
        ({"packages": [{"remarks": ["Duplicate order"]}]}, "Duplicate order"),
        ({"status": False, "rmk": "Bad token"}, "Bad token"),
        ('{"message": "from text"}', "from text"),
        ("<Response><ErrorMessage>Area not served</ErrorMessage></Response>", "Area not served"),
        ('<DTDC><FIELD name="strError" value="Invalid consignment"/></DTDC>', "Invalid consignment"),
        ("plain words", "plain words"),
        (b"bytes body", "bytes body"),
        ("", None),
        (None, None),
        ({"status": True}, None),
    ],
)
def test_error_message_from_payload(body, message):
    assert error_message_from_payload(body) == message


def test_long_messages_are_truncated():
    assert len(error_message_from_payload("x" * 1000)) == 300


def test_shipping_errors_pass_through_with_provider():
    original = ProviderRejected("nope")

    error = normalize_error(original, "ekart")

    assert error is original
    assert error.provider == "ekart"


def test_timeout_is_unavailable():
    error = normalize_error(httpx.ReadTimeout("slow"), "bluedart")
    assert error.kind == ErrorKind.PROVIDER_UNAVAILABLE
    assert error.details["reason"] == "ReadTimeout"


def test_connection_error_is_unavailable():
    request = httpx.Request("GET", "https://example.com")
    error = normalize_error(httpx.ConnectError("refused", request=request), "dtdc")
    assert error.kind == ErrorKind.PROVIDER_UNAVAILABLE


def test_http_status_error_uses_the_response():
    request = httpx.Request("POST", "https://example.com")
    response = httpx.Response(422, json={"message": "Bad weight"}, request=request)

    error = normalize_error(
        httpx.HTTPStatusError("bad", request=request, response=response), "ekart"
    )

    assert error.kind == ErrorKind.PROVIDER_REJECTED
    assert error.message == "Bad weight"


@pytest.mark.parametrize(
    "exc",
    [
        MalformedResponse("not json"),
        json.JSONDecodeError("Expecting value", "<html>", 0),
        ET.ParseError("no element found"),
    ],
)
def test_malformed_reply_depends_on_idempotency(exc):
    assert normalize_error(exc, "dtdc", idempotent=True).kind == ErrorKind.PROVIDER_UNAVAILABLE
    assert normalize_error(exc, "dtdc", idempotent=False).kind == ErrorKind.INTERNAL_ERROR


def test_unexpected_exception_is_internal():
    error = normalize_error(KeyError("awb"), "xpressbees")
    assert error.kind == ErrorKind.INTERNAL_ERROR
    assert error.details["reason"] == "KeyError"


def test_error_dict_shape():
    error = error_from_kind("ProviderUnavailable", "down", provider="delhivery")

    payload = error.to_dict()

    assert set(payload) == {"kind", "message", "provider", "details", "timestamp"}
    assert payload["kind"] == "ProviderUnavailable"
    assert error.http_status == 503
