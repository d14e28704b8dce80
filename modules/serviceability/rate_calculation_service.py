"""
Rate calculation over a set of rate cards.

Pure and synchronous: the caller loads the cards (base or seller effective)
and passes them in; nothing here touches the database or the network.
"""

import hashlib
import json
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import List, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

import config
from context_manager.context import context_user_data
from logger import logger

# schema
from modules.rate_card.rate_card_schema import RateCardModel, normalize_mode
from modules.serviceability.serviceability_schema import (
    RateCalculationRequest,
    RateCalculationEntry,
    CalculationResultModel,
)
from modules.serviceability.zone_classifier import Zone, classify

# data
from data.delivery_estimates import get_delivery_estimate

# utils
from utils.exception_handler import ValidationError, NoRatesAvailable, ShippingError
from utils.weight_calc import billed_weight, volumetric_weight, weight_multiplier


TWO_PLACES = Decimal("0.01")


def round2(value) -> float:
    return float(Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def _dec(value) -> Decimal:
    return Decimal(str(value))


class RateCalculationService:
    @staticmethod
    def coerce_request(
        request: Union[RateCalculationRequest, dict],
    ) -> RateCalculationRequest:
        if isinstance(request, RateCalculationRequest):
            return request
        try:
            return RateCalculationRequest.model_validate(request)
        except PydanticValidationError as e:
            fields = {
                ".".join(str(part) for part in err["loc"]): err["msg"]
                for err in e.errors()
            }
            raise ValidationError("Invalid rate calculation request", details=fields)

    @staticmethod
    def resolve_zone(request: RateCalculationRequest) -> Zone:
        if request.zone is not None:
            return Zone(request.zone)
        if not request.pickupPincode or not request.deliveryPincode:
            raise ValidationError(
                "Either zone or both pickupPincode and deliveryPincode are required"
            )
        return classify(request.pickupPincode, request.deliveryPincode)

    @staticmethod
    def filter_cards(
        cards: Sequence[RateCardModel],
        zone: Zone,
        courier: Optional[str] = None,
        mode: Optional[str] = None,
        rate_band: Optional[str] = None,
    ) -> List[RateCardModel]:
        if mode is not None:
            try:
                mode = normalize_mode(mode)
            except ValueError as e:
                raise ValidationError(str(e), details={"mode": mode})

        courier_key = courier.strip().lower() if courier else None

        candidates = []
        for card in cards:
            if not card.isActive or card.zone != zone:
                continue
            if courier_key and card.courier.lower() != courier_key:
                continue
            if mode and card.mode != mode:
                continue
            if rate_band and card.rateBand != rate_band:
                continue
            candidates.append(card)
        return candidates

    @staticmethod
    def price_card(
        card: RateCardModel,
        request: RateCalculationRequest,
        zone: Zone,
    ) -> RateCalculationEntry:
        dimensions = request.dimensions.model_dump() if request.dimensions else None
        minimum = card.minimumBillableWeight

        weight = billed_weight(request.weight, dimensions, minimum)
        multiplier = weight_multiplier(weight, minimum)

        shipping_cost = _dec(card.baseRate) + _dec(card.addlRate) * (multiplier - 1)

        cod_charges = Decimal("0")
        if request.paymentType == "cod":
            cod_charges = max(
                _dec(card.codAmount),
                _dec(card.codPercent) / 100 * _dec(request.codCollectableAmount),
            )

        rto_charges = _dec(card.rtoCharges) if request.includeRto else Decimal("0")
        gst = _dec(config.GST_RATE) * (shipping_cost + cod_charges)
        total = shipping_cost + cod_charges + rto_charges + gst

        return RateCalculationEntry(
            courier=card.courier,
            productName=card.productName,
            mode=card.mode,
            rateBand=card.rateBand,
            rateCardId=getattr(card, "baseRateCardId", None) or card.id,
            baseRate=card.baseRate,
            addlRate=card.addlRate,
            minimumBillableWeight=minimum,
            weightMultiplier=multiplier,
            billedWeight=weight,
            shippingCost=round2(shipping_cost),
            codCharges=round2(cod_charges),
            gst=round2(gst),
            rtoCharges=round2(rto_charges),
            total=round2(total),
            isOverride=bool(getattr(card, "isOverride", False)),
            deliveryEstimate=get_delivery_estimate(zone.value, card.mode),
        )

    @staticmethod
    def request_id(request: RateCalculationRequest, cards: Sequence[RateCardModel]) -> str:
        payload = {
            "request": request.model_dump(mode="json"),
            "cards": sorted(
                json.dumps(card.model_dump(mode="json"), sort_keys=True, default=str)
                for card in cards
            ),
        }
        digest = hashlib.sha256(
            json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
        ).hexdigest()
        return f"RC-{digest[:16].upper()}"

    @staticmethod
    def calculate(
        request: Union[RateCalculationRequest, dict],
        cards: Sequence[RateCardModel],
    ) -> CalculationResultModel:
        """
        Price every matching card for one shipment and rank the quotes.

        Raises:
            ValidationError: bad weight, dimensions, pincodes, mode or amount
            NoRatesAvailable: no active card matches the lane / filters
        """
        request = RateCalculationService.coerce_request(request)

        zone = RateCalculationService.resolve_zone(request)

        if request.codCollectableAmount < 0:
            raise ValidationError(
                "codCollectableAmount cannot be negative",
                details={"codCollectableAmount": request.codCollectableAmount},
            )

        dimensions = request.dimensions.model_dump() if request.dimensions else None
        # request level checks, raises on bad weight or dimensions
        reference_weight = billed_weight(
            request.weight, dimensions, config.DEFAULT_MIN_BILLABLE_WEIGHT
        )

        candidates = RateCalculationService.filter_cards(
            cards,
            zone,
            courier=request.courier,
            mode=request.mode,
            rate_band=request.rateBand,
        )
        if not candidates:
            raise NoRatesAvailable(
                f"No rates configured for {zone.value}",
                details={
                    "zone": zone.value,
                    "courier": request.courier,
                    "mode": request.mode,
                },
            )

        calculations = []
        for card in candidates:
            try:
                calculations.append(
                    RateCalculationService.price_card(card, request, zone)
                )
            except (ShippingError, ValueError, TypeError, InvalidOperation) as e:
                logger.warning(
                    extra=context_user_data.get(),
                    msg="Skipping rate card {} ({} {}): {}".format(
                        card.id, card.courier, card.productName, str(e)
                    ),
                )

        if not calculations:
            raise NoRatesAvailable(
                f"No valid rate cards for {zone.value}",
                details={"zone": zone.value, "candidates": len(candidates)},
            )

        calculations.sort(
            key=lambda entry: (
                entry.total,
                entry.courier.lower(),
                entry.mode,
                entry.productName.lower(),
                entry.rateBand,
                entry.rateCardId or 0,
            )
        )

        best_options = {}
        for entry in calculations:
            best_options.setdefault(entry.courier, entry)

        return CalculationResultModel(
            zone=zone,
            billedWeight=reference_weight,
            volumetricWeight=volumetric_weight(dimensions),
            calculations=calculations,
            bestOptions=best_options,
            deliveryEstimate=calculations[0].deliveryEstimate,
            rateSource=(
                "seller-specific"
                if any(entry.isOverride for entry in calculations)
                else "base"
            ),
            requestId=RateCalculationService.request_id(request, candidates),
        )


calculate = RateCalculationService.calculate
