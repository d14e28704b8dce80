import http
from typing import Any, Dict, List

from fastapi import APIRouter

# schema
from schema.base import GenericResponseModel

# utils
from utils.response_handler import build_api_response, unexpected_response

# services
from .rate_card_repository import SQLRateCardRepository
from .rate_card_service import RateCardService


rate_card_router = APIRouter(prefix="/rate-cards", tags=["rate cards"])


@rate_card_router.post(
    "/import",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def import_rate_cards(records: List[Dict[str, Any]]):
    try:
        response: GenericResponseModel = RateCardService.bulk_import(
            records, SQLRateCardRepository()
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while importing rate cards.")


@rate_card_router.get(
    "/export",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def export_rate_cards(include_inactive: bool = False):
    try:
        response: GenericResponseModel = RateCardService.export_cards(
            SQLRateCardRepository(), include_inactive=include_inactive
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while exporting rate cards.")


@rate_card_router.get(
    "/statistics",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def rate_card_statistics():
    try:
        response: GenericResponseModel = RateCardService.statistics(
            SQLRateCardRepository()
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while fetching rate card statistics.")


@rate_card_router.post(
    "/overrides",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def save_seller_override(override: Dict[str, Any]):
    try:
        response: GenericResponseModel = RateCardService.save_override(
            override, SQLRateCardRepository()
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while saving the override.")

# TODO: take the privileged flag from the caller's role once auth is wired in
@rate_card_router.delete(
    "/{card_id}",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def delete_rate_card(card_id: int, hard: bool = False):
    try:
        response: GenericResponseModel = RateCardService.remove_card(
            card_id, SQLRateCardRepository(), privileged=hard
        )
        return build_api_response(response)

    except Exception as e:
        return unexpected_response(e, "An error occurred while deleting the rate card.")
