from datetime import datetime
from typing import List, Optional

import pytz

from logger import logger
from context_manager.context import context_user_data

# schema
from modules.shipping_partner.shipping_partner_schema import PartnerConfigModel

# utils
from utils.datetime import parse_provider_timestamp
from utils.exception_handler import ProviderAuthFailed, ProviderRejected

from shipping_partner.base import CourierAdapter
from shipping_partner.error_normalizer import error_message_from_payload
from .status_mapping import status_mapping, EVENT_CATEGORIES


AIR_MODES = ("air", "express", "premium")

# franchise tokens are issued for an hour
TOKEN_LIFETIME = 60 * 60


def event_time_to_iso(value) -> Optional[str]:
    if value in (None, ""):
        return None
    try:
        moment = datetime.fromtimestamp(int(value), pytz.utc)
    except (TypeError, ValueError, OverflowError):
        return parse_provider_timestamp(value)
    return parse_provider_timestamp(moment)


def event_order(event: dict) -> float:
    try:
        return float(event.get("event_time") or 0)
    except (TypeError, ValueError):
        return 0.0


class Xpressbees(CourierAdapter):
    code = "xpressbees"
    display_name = "Xpressbees"
    base_url = "https://ship.xpressbees.com"
    uses_token = True

    # API URL'S
    Generate_Url = "api/users/franchise_login"
    courier_list_url = "api/franchise/shipments/courier"
    create_order_url = "api/franchise/shipments"
    cancel_order_url = "api/franchise/shipments/cancel_shipment"
    track_order_url = "api/franchise/shipments/track_shipment"

    async def fetch_token(self, partner_config: PartnerConfigModel):
        body = {
            "email": self.credential(partner_config, "email", "username"),
            "password": self.credential(partner_config, "password"),
        }
        response = await self._send(
            "POST", self.url(partner_config, self.Generate_Url), idempotent=True, json=body
        )
        response_data = self.json_body(response)

        if not response_data.get("status"):
            raise ProviderAuthFailed(
                error_message_from_payload(response_data) or "Xpressbees login failed",
                provider=self.code,
            )
        return response_data.get("data"), TOKEN_LIFETIME

    def auth_headers(self, partner_config: PartnerConfigModel, token: str = None) -> dict:
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    async def courier_services(self, partner_config: PartnerConfigModel) -> List[dict]:
        response = await self._request(
            "GET", self.courier_list_url, partner_config, idempotent=True
        )
        response_data = self.json_body(response)

        if not response_data.get("status"):
            raise self.rejected(response_data, "Xpressbees courier list unavailable")
        return response_data.get("data") or []

    @staticmethod
    def select_service(services: List[dict], mode: Optional[str]) -> Optional[dict]:
        wants_air = (mode or "").lower() in AIR_MODES
        for service in services:
            name = str(service.get("name", "")).upper()
            if "B2B" in name:
                continue
            if ("AIR" in name) == wants_air:
                return service
        return None

    async def _calculate_rate(self, pkg, delivery, partner_config):
        services = await self.courier_services(partner_config)
        service = self.select_service(services, pkg.get("mode"))
        if service is None:
            raise ProviderRejected(
                "No Xpressbees service for the requested mode",
                provider=self.code,
                details={"mode": pkg.get("mode")},
            )

        # the franchise account carries no price API, cards or defaults price it
        return {
            "total": None,
            "currency": "INR",
            "mode": "Air" if "AIR" in str(service.get("name", "")).upper() else "Surface",
            "serviceable": True,
            "estimatedDelivery": None,
            "serviceId": str(service.get("id")),
        }

    async def _book_shipment(self, shipment_details, partner_config):
        consignee = shipment_details["consignee"]
        pickup = shipment_details["pickup"]
        dimensions = shipment_details.get("dimensions") or {}
        is_cod = shipment_details["paymentType"] == "cod"

        service = self.select_service(
            await self.courier_services(partner_config), shipment_details.get("mode")
        )
        if service is None:
            raise ProviderRejected(
                "No Xpressbees service for the requested mode",
                provider=self.code,
                details={"orderId": shipment_details["orderId"]},
            )

        declared_value = str(shipment_details["declaredValue"])
        body = {
            "id": shipment_details["orderId"],
            "unique_order_number": "yes",
            "payment_method": "COD" if is_cod else "prepaid",
            "consigner_name": pickup.get("name"),
            "consigner_phone": pickup.get("phone"),
            "consigner_pincode": pickup["pincode"],
            "consigner_city": pickup.get("city"),
            "consigner_state": pickup.get("state"),
            "consigner_address": pickup.get("address"),
            "consigner_gst_number": "",
            "consignee_name": consignee["name"],
            "consignee_phone": consignee.get("phone"),
            "consignee_pincode": consignee["pincode"],
            "consignee_city": consignee.get("city"),
            "consignee_state": consignee.get("state"),
            "consignee_address": consignee.get("address"),
            "consignee_gst_number": "",
            "products": [
                {
                    "product_name": shipment_details["productDescription"],
                    "product_qty": str(shipment_details["quantity"]),
                    "product_price": declared_value,
                }
            ],
            "invoice": [
                {
                    "invoice_number": shipment_details["orderId"],
                    "invoice_date": datetime.now(pytz.utc).strftime("%Y-%m-%d"),
                    "ebill_number": "",
                    "ebill_expiry_date": "",
                    "invoice_value": declared_value,
                }
            ],
            "weight": str(int(round(float(shipment_details["weight"]) * 1000))),
            "length": str(dimensions.get("length") or 10),
            "breadth": str(dimensions.get("width") or 10),
            "height": str(dimensions.get("height") or 10),
            "courier_id": str(service.get("id")),
            "pickup_location": "franchise",
            "order_amount": declared_value,
            "collectable_amount": str(shipment_details["codAmount"] if is_cod else 0),
        }

        response = await self._request(
            "POST", self.create_order_url, partner_config, json=body
        )
        response_data = self.json_body(response)

        if response_data.get("response") is not True or not response_data.get("awb_number"):
            raise ProviderRejected(
                response_data.get("message") or "Xpressbees did not accept the shipment",
                provider=self.code,
                details={"orderId": shipment_details["orderId"]},
            )

        awb = str(response_data["awb_number"])
        logger.info(
            extra=context_user_data.get(),
            msg=f"Xpressbees AWB {awb} assigned to {shipment_details['orderId']}",
        )

        return {
            "awb": awb,
            "orderId": shipment_details["orderId"],
            "providerReference": response_data.get("shipping_id"),
        }

    async def _track_shipment(self, tracking_id, partner_config):
        response = await self._request(
            "POST",
            self.track_order_url,
            partner_config,
            idempotent=True,
            json={"awb_number": tracking_id},
        )
        response_data = self.json_body(response)

        if response_data.get("response") is not True:
            raise self.rejected(response_data, "Xpressbees tracking failed")

        tracking_data = response_data.get("tracking_data") or {}
        events = []
        for category in EVENT_CATEGORIES:
            events.extend(tracking_data.get(category) or [])

        if not events:
            raise ProviderRejected(
                "No tracking data for this AWB",
                provider=self.code,
                details={"awb": tracking_id},
            )

        events.sort(key=event_order)
        latest = events[-1]
        mapped = self.map_status(
            status_mapping, latest.get("status_code") or latest.get("status")
        )

        history = [
            {
                "status": self.map_status(
                    status_mapping, event.get("status_code") or event.get("status")
                )["status"],
                "providerStatus": event.get("status_code") or event.get("status"),
                "description": event.get("message"),
                "location": event.get("location"),
                "timestamp": event_time_to_iso(event.get("event_time")),
            }
            for event in events
        ]

        return {
            "awb": tracking_id,
            "status": mapped["status"],
            "subStatus": mapped["sub_status"],
            "providerStatus": latest.get("status"),
            "history": history,
            "estimatedDelivery": None,
        }

    async def _cancel_shipment(self, tracking_id, partner_config):
        response = await self._request(
            "POST",
            self.cancel_order_url,
            partner_config,
            json={"awb_number": tracking_id},
        )
        response_data = self.json_body(response)

        if response_data.get("response") is not True:
            raise self.rejected(response_data, "Xpressbees could not cancel the shipment")

        return {
            "awb": tracking_id,
            "cancelled": True,
            "message": response_data.get("message") or "Shipment cancelled",
        }
