from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from context_manager.context import context_user_data
from logger import logger

# schema
from schema.base import GenericResponseModel
from modules.shipping_partner.shipping_partner_schema import (
    PartnerConfigInsertModel,
    PartnerConfigModel,
)
from modules.shipping_partner.partner_registry import PartnerRegistry

# utils
from utils.exception_handler import ValidationError
from utils.response_handler import success_response, error_response


def _public(partner: PartnerConfigModel) -> dict:
    # credentials never leave the service
    data = partner.model_dump(mode="json", exclude={"credentials"})
    data["hasCredentials"] = bool(partner.credentials)
    return data


class ShippingPartnerService:
    @staticmethod
    def save_partner(
        partner: Dict[str, Any], registry: PartnerRegistry
    ) -> GenericResponseModel:
        try:
            try:
                partner = PartnerConfigInsertModel.model_validate(partner)
            except PydanticValidationError as e:
                raise ValidationError(
                    "Invalid partner configuration",
                    details={
                        ".".join(str(part) for part in err["loc"]): err["msg"]
                        for err in e.errors()
                    },
                )

            stored = registry.upsert(partner)
            logger.info(
                extra=context_user_data.get(),
                msg=f"Partner {stored.courierCode} saved ({stored.apiStatus})",
            )
            return success_response(_public(stored), "Shipping partner saved")

        except Exception as e:
            return error_response(e)

    @staticmethod
    def set_api_status(
        courier_code: str, api_status: Optional[str], registry: PartnerRegistry
    ) -> GenericResponseModel:
        try:
            if not api_status:
                raise ValidationError("apiStatus is required")

            stored = registry.set_api_status(courier_code, api_status)
            logger.info(
                extra=context_user_data.get(),
                msg=f"Partner {stored.courierCode} is now {stored.apiStatus}",
            )
            return success_response(_public(stored), "Shipping partner status updated")

        except Exception as e:
            return error_response(e)

    @staticmethod
    def rotate_credentials(
        courier_code: str, credentials: Dict[str, Any], registry: PartnerRegistry
    ) -> GenericResponseModel:
        try:
            if not isinstance(credentials, dict) or not credentials:
                raise ValidationError("credentials must be a non-empty object")

            stored = registry.rotate_credentials(courier_code, credentials)
            logger.info(
                extra=context_user_data.get(),
                msg=f"Credentials rotated for {stored.courierCode}",
            )
            return success_response(_public(stored), "Shipping partner credentials rotated")

        except Exception as e:
            return error_response(e)

    @staticmethod
    def active_couriers(registry: PartnerRegistry) -> GenericResponseModel:
        try:
            return success_response(
                registry.active_couriers(), "Active couriers fetched"
            )

        except Exception as e:
            return error_response(e)
