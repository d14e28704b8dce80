import http
from typing import Any, Dict

from fastapi import APIRouter, Body

# schema
from schema.base import GenericResponseModel

# utils
from utils.response_handler import build_api_response, unexpected_response

# services
from modules.shipment.shipment_service import get_orchestrator
from .shipping_partner_service import ShippingPartnerService


shipping_partner_router = APIRouter(prefix="/shipping-partners", tags=["shipping partners"])


@shipping_partner_router.get(
    "/active",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def active_couriers():
    try:
        response: GenericResponseModel = ShippingPartnerService.active_couriers(
            get_orchestrator().registry
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while fetching couriers.")


@shipping_partner_router.post(
    "",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def save_partner(partner: Dict[str, Any]):
    try:
        response: GenericResponseModel = ShippingPartnerService.save_partner(
            partner, get_orchestrator().registry
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while saving the shipping partner.")


@shipping_partner_router.put(
    "/{courier}/status",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def update_api_status(courier: str, apiStatus: str = Body(..., embed=True)):
    try:
        response: GenericResponseModel = ShippingPartnerService.set_api_status(
            courier, apiStatus, get_orchestrator().registry
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while updating the partner status.")


@shipping_partner_router.put(
    "/{courier}/credentials",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def rotate_credentials(courier: str, credentials: Dict[str, Any]):
    try:
        response: GenericResponseModel = ShippingPartnerService.rotate_credentials(
            courier, credentials, get_orchestrator().registry
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while rotating partner credentials.")
