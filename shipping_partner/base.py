"""
Common machinery for courier adapters.

Every adapter exposes the same four async operations and always returns an
AdapterResult dict:

    {"success": True, "data": {...}, "provider": "delhivery", "timestamp": "..."}
    {"success": False, "error": {...}, "provider": "delhivery", "timestamp": "..."}

Provider exceptions never leave an adapter; they are translated by the error
normalizer into the shared ShippingError kinds.
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx

import config
from context_manager.context import context_user_data
from logger import logger

# schema
from modules.shipping_partner.shipping_partner_schema import PartnerConfigModel

# utils
from utils.datetime import now_iso
from utils.exception_handler import (
    ShippingError,
    ConfigurationError,
    ProviderAuthFailed,
    ProviderRejected,
)

from .error_normalizer import (
    MalformedResponse,
    from_status,
    normalize_error,
    error_message_from_payload,
)


AdapterResult = Dict[str, Any]


def ok_result(provider: str, data: Any) -> AdapterResult:
    return {"success": True, "data": data, "provider": provider, "timestamp": now_iso()}


def fail_result(provider: str, error: ShippingError) -> AdapterResult:
    return {
        "success": False,
        "error": error.to_dict(),
        "provider": provider,
        "timestamp": now_iso(),
    }


DEFAULT_TOKEN_TTL = 3600


class TokenHolder:
    """
    Access token of one courier account.

    States: unauthenticated -> authenticating -> authenticated -> expired.
    Concurrent callers that find no valid token share one in-flight refresh.
    """

    def __init__(self, courier_code: str, expiry_buffer: int = None):
        self.courier_code = courier_code
        self.expiry_buffer = (
            config.TOKEN_EXPIRY_BUFFER if expiry_buffer is None else expiry_buffer
        )
        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        self._inflight: Optional[asyncio.Future] = None
        self.refresh_count = 0

    @property
    def state(self) -> str:
        if self._inflight is not None:
            return "authenticating"
        if self._token is None:
            return "unauthenticated"
        if time.monotonic() >= self._expires_at:
            return "expired"
        return "authenticated"

    @property
    def token(self) -> Optional[str]:
        return self._token if self.state == "authenticated" else None

    def set(self, token: str, expires_in: Optional[float] = None):
        lifetime = DEFAULT_TOKEN_TTL if expires_in is None else float(expires_in)
        # refresh a little before the provider expires it
        usable = max(lifetime - self.expiry_buffer, lifetime / 2, 1.0)
        self._token = token
        self._expires_at = time.monotonic() + usable

    def invalidate(self):
        self._token = None
        self._expires_at = 0.0

    async def get(
        self, fetch: Callable[[], Awaitable[Tuple[str, Optional[float]]]]
    ) -> str:
        token = self.token
        if token is not None:
            return token

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh(fetch))

        # a cancelled caller must not cancel the refresh other callers wait on
        return await asyncio.shield(self._inflight)

    async def _refresh(self, fetch) -> str:
        try:
            token, expires_in = await fetch()
            if not token:
                raise ProviderAuthFailed(
                    "Provider did not return an access token",
                    provider=self.courier_code,
                )
            self.set(token, expires_in)
            self.refresh_count += 1
            logger.info(
                extra=context_user_data.get(),
                msg=f"{self.courier_code}: access token refreshed",
            )
            return token
        finally:
            self._inflight = None


class CourierAdapter(ABC):
    """Base class of every courier integration."""

    code: str = ""
    display_name: str = ""
    base_url: str = ""
    uses_token: bool = False

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        token_holder: Optional[TokenHolder] = None,
        timeout: float = None,
    ):
        self.transport = transport
        self.token_holder = token_holder or TokenHolder(self.code)
        self.timeout = config.PROVIDER_TIMEOUT if timeout is None else timeout

    # ------------------------------------------------------------------
    # public operations
    # ------------------------------------------------------------------

    async def calculate_rate(
        self, pkg: dict, delivery: dict, partner_config: PartnerConfigModel
    ) -> AdapterResult:
        return await self._guard(
            "calculate_rate",
            lambda: self._calculate_rate(pkg, delivery, partner_config),
            idempotent=True,
        )

    async def book_shipment(
        self, shipment_details: dict, partner_config: PartnerConfigModel
    ) -> AdapterResult:
        return await self._guard(
            "book_shipment",
            lambda: self._book_shipment(shipment_details, partner_config),
            idempotent=False,
        )

    async def track_shipment(
        self, tracking_id: str, partner_config: PartnerConfigModel
    ) -> AdapterResult:
        return await self._guard(
            "track_shipment",
            lambda: self._track_shipment(tracking_id, partner_config),
            idempotent=True,
        )

    async def cancel_shipment(
        self, tracking_id: str, partner_config: PartnerConfigModel
    ) -> AdapterResult:
        return await self._guard(
            "cancel_shipment",
            lambda: self._cancel_shipment(tracking_id, partner_config),
            idempotent=False,
        )

    # ------------------------------------------------------------------
    # provider specific parts
    # ------------------------------------------------------------------

    @abstractmethod
    async def _calculate_rate(self, pkg, delivery, partner_config) -> dict: ...

    @abstractmethod
    async def _book_shipment(self, shipment_details, partner_config) -> dict: ...

    @abstractmethod
    async def _track_shipment(self, tracking_id, partner_config) -> dict: ...

    @abstractmethod
    async def _cancel_shipment(self, tracking_id, partner_config) -> dict: ...

    async def fetch_token(
        self, partner_config: PartnerConfigModel
    ) -> Tuple[str, Optional[float]]:
        """Token providers return (token, expires_in_seconds)."""
        raise NotImplementedError

    def auth_headers(self, partner_config: PartnerConfigModel, token: str = None) -> dict:
        return {}

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def ok(self, data: Any) -> AdapterResult:
        return ok_result(self.code, data)

    def fail(self, error: ShippingError) -> AdapterResult:
        return fail_result(self.code, error)

    async def _guard(self, operation: str, call, idempotent: bool) -> AdapterResult:
        started = time.monotonic()
        try:
            data = await call()
        except Exception as e:
            error = normalize_error(e, self.code, idempotent=idempotent)
            logger.error(
                extra=context_user_data.get(),
                msg="{} {} failed in {:.0f}ms: {} {}".format(
                    self.code,
                    operation,
                    (time.monotonic() - started) * 1000,
                    error.kind.value,
                    error.message,
                ),
            )
            return self.fail(error)

        logger.info(
            extra=context_user_data.get(),
            msg="{} {} succeeded in {:.0f}ms".format(
                self.code, operation, (time.monotonic() - started) * 1000
            ),
        )
        return self.ok(data)

    def url(self, partner_config: PartnerConfigModel, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        base = (partner_config.apiEndpoint or self.base_url).rstrip("/")
        return base + "/" + path.lstrip("/")

    def credential(self, partner_config: PartnerConfigModel, *names: str) -> str:
        credentials = partner_config.credentials or {}
        for name in names:
            value = credentials.get(name)
            if value not in (None, ""):
                return str(value)
        raise ConfigurationError(
            f"{self.display_name or self.code} credential missing: {names[0]}",
            provider=self.code,
            details={"expected": list(names)},
        )

    async def _send(
        self, method: str, url: str, idempotent: bool = False, **kwargs
    ) -> httpx.Response:
        """
        One HTTP exchange. Reads are retried once on a transient failure,
        writes are never retried.
        """
        attempts = 2 if idempotent else 1

        for attempt in range(1, attempts + 1):
            try:
                async with httpx.AsyncClient(
                    transport=self.transport, timeout=self.timeout
                ) as client:
                    response = await client.request(method, url, **kwargs)

                if response.status_code >= 400:
                    raise from_status(response.status_code, response.text, self.code)
                return response

            except (httpx.HTTPError, ShippingError) as e:
                error = normalize_error(e, self.code, idempotent=idempotent)
                if error.retryable and attempt < attempts:
                    logger.warning(
                        extra=context_user_data.get(),
                        msg=f"{self.code}: retrying {method} {url} after {error.message}",
                    )
                    continue
                raise error

    async def _request(
        self,
        method: str,
        path: str,
        partner_config: PartnerConfigModel,
        idempotent: bool = False,
        headers: Optional[dict] = None,
        **kwargs,
    ) -> httpx.Response:
        url = self.url(partner_config, path)

        for auth_attempt in (1, 2):
            request_headers = dict(headers or {})
            token = None
            if self.uses_token:
                token = await self.token_holder.get(
                    lambda: self.fetch_token(partner_config)
                )
            request_headers.update(self.auth_headers(partner_config, token))

            try:
                return await self._send(
                    method, url, idempotent=idempotent, headers=request_headers, **kwargs
                )
            except ProviderAuthFailed:
                # a 401 means the request was refused, safe to resend once
                if self.uses_token and auth_attempt == 1:
                    logger.warning(
                        extra=context_user_data.get(),
                        msg=f"{self.code}: token rejected, re-authenticating",
                    )
                    self.token_holder.invalidate()
                    continue
                raise

    @staticmethod
    def json_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"Expected JSON from provider: {e}")

    def rejected(self, body: Any, default: str) -> ProviderRejected:
        return ProviderRejected(
            error_message_from_payload(body) or default, provider=self.code
        )

    @staticmethod
    def map_status(status_mapping: dict, provider_status: Optional[str]) -> dict:
        if not provider_status:
            return {"status": "unknown", "sub_status": "unknown"}
        entry = status_mapping.get(provider_status)
        if entry is None:
            lowered = {key.lower(): value for key, value in status_mapping.items()}
            entry = lowered.get(str(provider_status).strip().lower())
        return entry or {"status": "in_transit", "sub_status": str(provider_status)}

    @staticmethod
    def dump(payload: Any) -> str:
        return json.dumps(payload, separators=(",", ":"))
