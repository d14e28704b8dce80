import http
from fastapi import APIRouter

# schema
from schema.base import GenericResponseModel
from modules.shipment.shipment_schema import (
    ShippingRateRequestModel,
    RateComparisonRequestModel,
    BookShipmentRequestModel,
)

# utils
from utils.response_handler import build_api_response, unexpected_response

# services
from .shipment_service import ShipmentService


# Creating the router for shipping
shipment_router = APIRouter(prefix="/shipping", tags=["shipping"])


@shipment_router.post(
    "/rates/calculate",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def calculate_rates(rate_request: ShippingRateRequestModel):
    try:
        payload = rate_request.model_dump(exclude_none=True)
        seller_id = payload.pop("sellerId", None)

        response: GenericResponseModel = ShipmentService.calculate_shipping_rate(
            payload, seller_id=seller_id
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while calculating shipping rates.")


@shipment_router.post(
    "/rates/compare",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def compare_rates(rate_request: RateComparisonRequestModel):
    try:
        payload = rate_request.model_dump(exclude_none=True)
        seller_id = payload.pop("sellerId", None)
        couriers = payload.pop("couriers", None)

        response: GenericResponseModel = await ShipmentService.get_rate_comparison(
            payload, couriers=couriers, seller_id=seller_id
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while comparing courier rates.")


@shipment_router.post(
    "/{courier}/book",
    status_code=http.HTTPStatus.CREATED,
    response_model=GenericResponseModel,
)
async def book_shipment(courier: str, shipment_request: BookShipmentRequestModel):
    try:
        response: GenericResponseModel = await ShipmentService.book_shipment(
            courier, shipment_request.model_dump(exclude_none=True)
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while booking the shipment.")


@shipment_router.get(
    "/{courier}/track/{tracking_id}",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def track_shipment(courier: str, tracking_id: str):
    try:
        response: GenericResponseModel = await ShipmentService.track_shipment(
            courier, tracking_id
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while tracking the shipment.")


@shipment_router.post(
    "/{courier}/cancel/{tracking_id}",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def cancel_shipment(courier: str, tracking_id: str):
    try:
        response: GenericResponseModel = await ShipmentService.cancel_shipment(
            courier, tracking_id
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while cancelling the shipment.")
