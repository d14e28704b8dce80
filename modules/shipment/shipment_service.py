import http
from typing import List, Optional, Union

from pydantic import BaseModel

from context_manager.context import context_user_data, set_seller_context
from logger import logger

# schema
from schema.base import GenericResponseModel
from modules.rate_card.rate_card_schema import RateCardModel

# services
from modules.rate_card.rate_card_repository import (
    RateCardRepository,
    SQLRateCardRepository,
)
from modules.rate_card.override_resolver import effective_rate_cards
from modules.serviceability.rate_calculation_service import RateCalculationService
from modules.serviceability.request_normalizer import (
    normalize_rate_request,
    normalize_shipment_details,
)
from modules.shipping_partner.partner_registry import (
    PartnerRegistry,
    SQLPartnerConfigStore,
)
from modules.shipment.courier_orchestrator import (
    CourierOrchestrator,
    TRACK_SHIPMENT,
    CANCEL_SHIPMENT,
)

# utils
from utils.exception_handler import NoRatesAvailable, error_from_kind
from utils.response_handler import success_response, error_response


_orchestrator: Optional[CourierOrchestrator] = None


def get_orchestrator() -> CourierOrchestrator:
    """Process wide orchestrator, its registry cache and tokens are shared."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = CourierOrchestrator(PartnerRegistry(SQLPartnerConfigStore()))
    return _orchestrator


def _as_dict(payload: Union[BaseModel, dict, None]) -> dict:
    if payload is None:
        return {}
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_none=True)
    return payload


def _load_cards(
    repository: RateCardRepository, seller_id: Optional[str]
) -> List[RateCardModel]:
    if seller_id:
        return effective_rate_cards(seller_id, repository)
    return repository.list_active_cards()


def _adapter_failure(result: dict, **extra) -> GenericResponseModel:
    error = result["error"]
    shipping_error = error_from_kind(
        error["kind"],
        error["message"],
        provider=error.get("provider"),
        details=error.get("details"),
    )
    return GenericResponseModel(
        status_code=shipping_error.http_status,
        status=False,
        message=error["message"],
        data={**error, **extra},
    )


class ShipmentService:
    @staticmethod
    def calculate_shipping_rate(
        request: Union[BaseModel, dict],
        seller_id: Optional[str] = None,
        repository: Optional[RateCardRepository] = None,
    ) -> GenericResponseModel:
        try:
            set_seller_context(seller_id)
            repository = repository or SQLRateCardRepository()

            rate_request = normalize_rate_request(_as_dict(request))
            cards = _load_cards(repository, seller_id)

            result = RateCalculationService.calculate(rate_request, cards)

            logger.info(
                extra=context_user_data.get(),
                msg="Rates calculated for {}: {} options, cheapest {}".format(
                    result.zone.value,
                    len(result.calculations),
                    result.calculations[0].total,
                ),
            )
            return success_response(result, "Shipping rates calculated")

        except Exception as e:
            return error_response(e)

    @staticmethod
    async def get_rate_comparison(
        request: Union[BaseModel, dict],
        couriers: Optional[List[str]] = None,
        seller_id: Optional[str] = None,
        repository: Optional[RateCardRepository] = None,
        orchestrator: Optional[CourierOrchestrator] = None,
    ) -> GenericResponseModel:
        try:
            set_seller_context(seller_id)
            repository = repository or SQLRateCardRepository()
            orchestrator = orchestrator or get_orchestrator()

            rate_request = normalize_rate_request(_as_dict(request))
            if couriers is None and rate_request.get("courier"):
                couriers = [rate_request["courier"]]
            # every courier is quoted, the filter only picks the couriers
            rate_request.pop("courier", None)

            cards = _load_cards(repository, seller_id)
            result = await orchestrator.compare_rates(
                rate_request, couriers=couriers, cards=cards
            )

            if result.cheapest is None:
                raise NoRatesAvailable(
                    "No courier could quote this shipment",
                    details={
                        "failedCouriers": result.failedCouriers,
                        "rates": [entry.model_dump(mode="json") for entry in result.rates],
                    },
                )

            return success_response(result, "Courier rates compared")

        except Exception as e:
            return error_response(e)

    @staticmethod
    async def book_shipment(
        courier_code: str,
        shipment_details: Union[BaseModel, dict],
        orchestrator: Optional[CourierOrchestrator] = None,
    ) -> GenericResponseModel:
        try:
            orchestrator = orchestrator or get_orchestrator()
            details = normalize_shipment_details(_as_dict(shipment_details))

            result = await orchestrator.book(courier_code, details)
            if not result["success"]:
                return _adapter_failure(result, alternatives=result.get("alternatives", []))

            data = result["data"]
            return success_response(
                {
                    "awb": data["awb"],
                    "trackingUrl": data.get("trackingUrl"),
                    "provider": result["provider"],
                    "bookingType": data.get("bookingType", "API"),
                    "orderId": data.get("orderId"),
                    "providerReference": data.get("providerReference"),
                },
                "Shipment booked",
                status_code=http.HTTPStatus.CREATED,
            )

        except Exception as e:
            return error_response(e)

    @staticmethod
    async def track_shipment(
        courier_code: str,
        tracking_id: str,
        orchestrator: Optional[CourierOrchestrator] = None,
    ) -> GenericResponseModel:
        try:
            orchestrator = orchestrator or get_orchestrator()

            result = await orchestrator.dispatch(
                courier_code, TRACK_SHIPMENT, {"trackingId": tracking_id}
            )
            if not result["success"]:
                return _adapter_failure(result)

            data = result["data"]
            return success_response(
                {
                    "awb": data.get("awb", tracking_id),
                    "status": data["status"],
                    "subStatus": data.get("subStatus"),
                    "providerStatus": data.get("providerStatus"),
                    "history": data.get("history", []),
                    "estimatedDelivery": data.get("estimatedDelivery"),
                    "provider": result["provider"],
                },
                "Shipment tracked",
            )

        except Exception as e:
            return error_response(e)

    @staticmethod
    async def cancel_shipment(
        courier_code: str,
        tracking_id: str,
        orchestrator: Optional[CourierOrchestrator] = None,
    ) -> GenericResponseModel:
        try:
            orchestrator = orchestrator or get_orchestrator()

            result = await orchestrator.dispatch(
                courier_code, CANCEL_SHIPMENT, {"trackingId": tracking_id}
            )
            if not result["success"]:
                return _adapter_failure(result)

            data = result["data"]
            logger.info(
                extra=context_user_data.get(),
                msg=f"{result['provider']} shipment {tracking_id} cancelled",
            )
            return success_response(
                {
                    "awb": data.get("awb", tracking_id),
                    "message": data.get("message") or "Shipment cancelled",
                    "provider": result["provider"],
                },
                "Shipment cancelled",
            )

        except Exception as e:
            return error_response(e)
