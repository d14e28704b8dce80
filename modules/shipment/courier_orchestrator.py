"""
Routes courier operations through the matching adapter.

Couriers are looked up by code in data.courier_service_mapping, partner
configuration comes from the PartnerRegistry. Every outcome leaves this module
as an AdapterResult, failures always carry one of the shared error kinds.

Degraded mode: when a courier's rate API is unreachable, or reachable but
unable to price the lane, rate calls are answered with a deterministic
estimate from the partner's rateDefaults, flagged rateType FALLBACK.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Sequence, Union

import httpx

import config
from context_manager.context import context_user_data
from logger import logger

# schema
from modules.rate_card.rate_card_schema import RateCardModel
from modules.serviceability.serviceability_schema import (
    RateCalculationRequest,
    RateComparisonEntry,
    RateComparisonResultModel,
)
from modules.shipping_partner.shipping_partner_schema import PartnerConfigModel

# services
from modules.serviceability.rate_calculation_service import (
    RateCalculationService,
    round2,
)
from modules.shipping_partner.partner_registry import (
    PartnerRegistry,
    normalize_courier_code,
)

# data
from data.courier_service_mapping import courier_service_mapping

# utils
from utils.exception_handler import (
    ErrorKind,
    ShippingError,
    ConfigurationError,
    ValidationError,
    NoRatesAvailable,
    ProviderUnavailable,
    InternalError,
)
from utils.weight_calc import billed_weight
from shipping_partner.base import AdapterResult, CourierAdapter, fail_result, ok_result


CALCULATE_RATE = "calculate_rate"
BOOK_SHIPMENT = "book_shipment"
TRACK_SHIPMENT = "track_shipment"
CANCEL_SHIPMENT = "cancel_shipment"

OPERATIONS = (CALCULATE_RATE, BOOK_SHIPMENT, TRACK_SHIPMENT, CANCEL_SHIPMENT)

# operations whose package has to fit the partner's limits
LIMITED_OPERATIONS = (CALCULATE_RATE, BOOK_SHIPMENT)

# a rate read may take one retry, its deadline covers both attempts
RATE_ATTEMPTS = 2


class CourierOrchestrator:
    def __init__(
        self,
        registry: PartnerRegistry,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        adapters: Optional[Dict[str, type]] = None,
        provider_timeout: float = None,
        comparison_timeout: float = None,
    ):
        self.registry = registry
        self.transport = transport
        self.adapters = adapters if adapters is not None else courier_service_mapping
        self.provider_timeout = (
            config.PROVIDER_TIMEOUT if provider_timeout is None else provider_timeout
        )
        self.comparison_timeout = (
            config.COMPARISON_TIMEOUT if comparison_timeout is None else comparison_timeout
        )

    # ------------------------------------------------------------------
    # resolution
    # ------------------------------------------------------------------

    def adapter_for(self, courier_code: str) -> CourierAdapter:
        adapter_cls = self.adapters.get(courier_code)
        if adapter_cls is None:
            raise ConfigurationError(
                f"No integration available for courier {courier_code}",
                provider=courier_code,
            )
        return adapter_cls(
            transport=self.transport,
            token_holder=self.registry.token_holder(courier_code),
            timeout=self.provider_timeout,
        )

    async def resolve(self, courier_code: str):
        """Returns (code, partner, adapter) or raises before any network call."""
        code = normalize_courier_code(courier_code)

        partner = await self.registry.get(code)
        if partner is None:
            raise ConfigurationError(
                f"Courier {courier_code} is not configured", provider=code
            )
        if not partner.is_active:
            raise ConfigurationError(
                f"Courier {partner.name} is inactive",
                provider=code,
                details={"apiStatus": partner.apiStatus},
            )
        return code, partner, self.adapter_for(code)

    @staticmethod
    def check_limits(
        partner: PartnerConfigModel, weight, dimensions: Optional[dict] = None
    ):
        limits = partner.weightLimits
        try:
            weight = float(weight)
        except (TypeError, ValueError):
            raise ValidationError("weight must be a number", details={"weight": weight})
        if weight <= 0:
            raise ValidationError(
                "weight must be greater than zero", details={"weight": weight}
            )

        if weight < limits.min or (limits.max is not None and weight > limits.max):
            raise ValidationError(
                f"{partner.name} accepts {limits.min}-{limits.max} kg, got {weight}",
                provider=partner.courierCode,
                details={"weight": weight, "weightLimits": limits.model_dump()},
            )

        dimensions = dimensions or {}
        bounds = partner.dimensionLimits
        for field, maximum in (
            ("length", bounds.maxLength),
            ("width", bounds.maxWidth),
            ("height", bounds.maxHeight),
        ):
            value = dimensions.get(field)
            if maximum is not None and value is not None and float(value) > maximum:
                raise ValidationError(
                    f"{partner.name} accepts {field} up to {maximum} cm, got {value}",
                    provider=partner.courierCode,
                    details={field: value, "dimensionLimits": bounds.model_dump()},
                )

    @staticmethod
    def fallback_estimate(partner: PartnerConfigModel, weight: float) -> float:
        defaults = partner.rateDefaults
        return round2(defaults.baseRate + defaults.weightRate * weight)

    # ------------------------------------------------------------------
    # dispatch
    # ------------------------------------------------------------------

    async def dispatch(
        self, courier_code: str, operation: str, payload: dict
    ) -> AdapterResult:
        """
        Run one operation against one courier.

        payload keys per operation:
            calculate_rate   pkg, delivery
            book_shipment    shipmentDetails
            track_shipment   trackingId
            cancel_shipment  trackingId
        """
        provider = str(courier_code).strip().lower() if courier_code else None
        try:
            if operation not in OPERATIONS:
                raise ValidationError(
                    f"Unknown courier operation {operation}",
                    details={"operation": operation},
                )
            provider, partner, adapter = await self.resolve(courier_code)
        except ShippingError as e:
            return self._failed(provider, operation, e)

        return await self._run(provider, partner, adapter, operation, payload)

    async def _run(
        self,
        provider: str,
        partner: PartnerConfigModel,
        adapter: CourierAdapter,
        operation: str,
        payload: dict,
    ) -> AdapterResult:
        try:
            if operation == CALCULATE_RATE:
                pkg, delivery = payload["pkg"], payload["delivery"]
                self.check_limits(partner, pkg.get("weight"), pkg.get("dimensions"))
                result = await adapter.calculate_rate(pkg, delivery, partner)
                return self._degrade(partner, pkg, result)

            if operation == BOOK_SHIPMENT:
                details = payload["shipmentDetails"]
                self.check_limits(partner, details.get("weight"), details.get("dimensions"))
                return await adapter.book_shipment(details, partner)

            tracking_id = payload.get("trackingId")
            if not tracking_id:
                raise ValidationError("trackingId is required", provider=provider)

            if operation == TRACK_SHIPMENT:
                return await adapter.track_shipment(str(tracking_id), partner)
            return await adapter.cancel_shipment(str(tracking_id), partner)

        except ShippingError as e:
            return self._failed(provider, operation, e)
        except (KeyError, TypeError) as e:
            return self._failed(
                provider,
                operation,
                ValidationError(
                    f"Malformed {operation} payload", details={"error": str(e)}
                ),
            )

    @staticmethod
    def _failed(provider: Optional[str], operation: str, error: ShippingError) -> AdapterResult:
        if error.provider is None:
            error.provider = provider
        logger.error(
            extra=context_user_data.get(),
            msg=f"{provider} {operation} refused: {error.kind.value} {error.message}",
        )
        return fail_result(provider, error)

    def _degrade(
        self, partner: PartnerConfigModel, pkg: dict, result: AdapterResult
    ) -> AdapterResult:
        """Attach a FALLBACK estimate when the API could not price the lane."""
        if result["success"]:
            if result["data"].get("total") is not None:
                return result
            reason = "provider confirmed serviceability without a price"
        elif result["error"]["kind"] == ErrorKind.PROVIDER_UNAVAILABLE.value:
            reason = result["error"]["message"]
        else:
            return result

        weight = billed_weight(
            pkg["weight"], pkg.get("dimensions"), config.DEFAULT_MIN_BILLABLE_WEIGHT
        )
        result["fallback"] = {
            "rateType": "FALLBACK",
            "total": self.fallback_estimate(partner, weight),
            "billedWeight": weight,
            "baseRate": partner.rateDefaults.baseRate,
            "weightRate": partner.rateDefaults.weightRate,
            "reason": reason,
        }
        logger.warning(
            extra=context_user_data.get(),
            msg="{}: degraded to fallback estimate {} ({})".format(
                partner.courierCode, result["fallback"]["total"], reason
            ),
        )
        return result

    # ------------------------------------------------------------------
    # booking
    # ------------------------------------------------------------------

    async def book(self, courier_code: str, shipment_details: dict) -> AdapterResult:
        """
        Book once, never retried. A failed booking carries the other active
        couriers the caller may try instead.
        """
        result = await self.dispatch(
            courier_code, BOOK_SHIPMENT, {"shipmentDetails": shipment_details}
        )

        if not result["success"]:
            exclude = [result["provider"]] if result.get("provider") else []
            try:
                result["alternatives"] = self.registry.active_couriers(
                    exclude=exclude, supported=self.adapters
                )
            except ShippingError:
                result["alternatives"] = []
            return result

        partner = await self.registry.get(result["provider"])
        data = result["data"]
        data["trackingUrl"] = partner.tracking_link(data["awb"]) if partner else None
        data["bookingType"] = "API"
        return result

    # ------------------------------------------------------------------
    # rate comparison
    # ------------------------------------------------------------------

    @staticmethod
    def _card_quote(
        code: str,
        request: RateCalculationRequest,
        cards: Sequence[RateCardModel],
    ) -> Optional[RateComparisonEntry]:
        courier_cards = [
            card for card in cards if normalize_courier_code(card.courier) == code
        ]
        if not courier_cards:
            return None
        try:
            result = RateCalculationService.calculate(
                request.model_copy(update={"courier": None}), courier_cards
            )
        except NoRatesAvailable:
            return None

        best = result.calculations[0]
        return RateComparisonEntry(
            courier=code,
            success=True,
            rateType="RATE_CARD",
            total=best.total,
            mode=best.mode,
            productName=best.productName,
            deliveryEstimate=best.deliveryEstimate,
            details=best.model_dump(mode="json"),
        )

    async def _quote(
        self,
        courier_code: str,
        request: RateCalculationRequest,
        pkg: dict,
        delivery: dict,
        cards: Sequence[RateCardModel],
    ) -> RateComparisonEntry:
        code = courier_code
        try:
            code, partner, adapter = await self.resolve(courier_code)
            self.check_limits(partner, pkg["weight"], pkg.get("dimensions"))
        except ShippingError as e:
            return RateComparisonEntry(courier=code, success=False, error=e.to_dict())

        entry = self._card_quote(code, request, cards)
        if entry is not None:
            return entry

        deadline = self.provider_timeout * RATE_ATTEMPTS
        try:
            result = await asyncio.wait_for(
                adapter.calculate_rate(pkg, delivery, partner),
                timeout=deadline,
            )
        except asyncio.TimeoutError:
            result = fail_result(
                code,
                ProviderUnavailable(
                    f"{partner.name} did not answer within {deadline}s",
                    provider=code,
                ),
            )
        result = self._degrade(partner, pkg, result)

        if result["success"] and "fallback" not in result:
            data = result["data"]
            return RateComparisonEntry(
                courier=code,
                success=True,
                rateType="API",
                total=data["total"],
                mode=data.get("mode"),
                deliveryEstimate=data.get("estimatedDelivery"),
                details=data,
            )

        fallback = result.get("fallback")
        return RateComparisonEntry(
            courier=code,
            success=result["success"],
            rateType="FALLBACK" if fallback else None,
            total=fallback["total"] if fallback else None,
            mode=(result.get("data") or {}).get("mode") or pkg.get("mode"),
            details={"fallback": fallback} if fallback else {},
            error=result.get("error"),
        )

    async def compare_rates(
        self,
        request: Union[RateCalculationRequest, dict],
        couriers: Optional[Iterable[str]] = None,
        cards: Sequence[RateCardModel] = (),
    ) -> RateComparisonResultModel:
        """
        Quote every courier concurrently. One slow or failing courier never
        blocks the others; whatever finished before the deadline, or before
        the caller cancelled, is returned.
        """
        request = RateCalculationService.coerce_request(request)
        if not request.pickupPincode or not request.deliveryPincode:
            raise ValidationError(
                "pickupPincode and deliveryPincode are required to compare couriers"
            )
        zone = RateCalculationService.resolve_zone(request)

        dimensions = request.dimensions.model_dump() if request.dimensions else None
        reference_weight = billed_weight(
            request.weight, dimensions, config.DEFAULT_MIN_BILLABLE_WEIGHT
        )

        codes: List[str] = []
        if couriers is None:
            couriers = self.registry.active_couriers(supported=self.adapters)
        for courier in couriers:
            code = normalize_courier_code(courier)
            if code not in codes:
                codes.append(code)

        pkg = {
            "weight": request.weight,
            "dimensions": dimensions,
            "paymentType": request.paymentType,
            "codAmount": request.codCollectableAmount,
            "mode": request.mode,
        }
        delivery = {
            "pickupPincode": request.pickupPincode,
            "deliveryPincode": request.deliveryPincode,
        }

        tasks = {
            code: asyncio.ensure_future(self._quote(code, request, pkg, delivery, cards))
            for code in codes
        }

        cancelled = False
        try:
            if tasks:
                await asyncio.wait(tasks.values(), timeout=self.comparison_timeout)
        except asyncio.CancelledError:
            cancelled = True
            logger.warning(
                extra=context_user_data.get(),
                msg="Rate comparison cancelled, returning finished quotes",
            )

        entries = []
        for code, task in tasks.items():
            if task.done() and not task.cancelled():
                error = task.exception()
                if error is None:
                    entries.append(task.result())
                    continue
                if isinstance(error, ShippingError):
                    shipping_error = error
                else:
                    logger.error(
                        extra=context_user_data.get(),
                        msg=f"{code}: rate quote crashed: {error!r}",
                    )
                    shipping_error = InternalError(
                        "Rate quote failed unexpectedly", provider=code
                    )
            else:
                task.cancel()
                shipping_error = ProviderUnavailable(
                    "Rate comparison ended before the courier answered", provider=code
                )
            entries.append(
                RateComparisonEntry(
                    courier=code, success=False, error=shipping_error.to_dict()
                )
            )

        priced = [entry for entry in entries if entry.success and entry.total is not None]
        priced.sort(key=lambda entry: (entry.total, entry.courier))
        # with no real quote, the cheapest degraded estimate stands in
        estimated = sorted(
            (entry for entry in entries if entry.rateType == "FALLBACK" and entry.total is not None),
            key=lambda entry: (entry.total, entry.courier),
        )
        failed = [entry.courier for entry in entries if not entry.success]

        entries.sort(
            key=lambda entry: (
                not (entry.success and entry.total is not None),
                entry.total if entry.total is not None else float("inf"),
                entry.courier,
            )
        )

        logger.info(
            extra=context_user_data.get(),
            msg="Rate comparison: {} couriers, {} priced, {} failed".format(
                len(codes), len(priced), len(failed)
            ),
        )

        return RateComparisonResultModel(
            zone=zone,
            billedWeight=reference_weight,
            rates=entries,
            failedCouriers=failed,
            partial=bool(failed) or cancelled,
            cheapest=priced[0] if priced else (estimated[0] if estimated else None),
        )
