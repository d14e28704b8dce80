from datetime import datetime
from typing import Optional

import pytz

from logger import logger
from context_manager.context import context_user_data

# schema
from modules.shipping_partner.shipping_partner_schema import PartnerConfigModel

# utils
from utils.datetime import parse_provider_timestamp
from utils.exception_handler import ProviderRejected

from shipping_partner.base import CourierAdapter
from .status_mapping import status_mapping


AIR_MODES = ("air", "express", "premium")


def epoch_to_iso(value) -> Optional[str]:
    """Ekart sends ctime / edd as epoch milliseconds."""
    if value in (None, ""):
        return None
    try:
        moment = datetime.fromtimestamp(float(value) / 1000, pytz.utc)
    except (TypeError, ValueError, OverflowError):
        return parse_provider_timestamp(value)
    return parse_provider_timestamp(moment)


class Ekart(CourierAdapter):
    code = "ekart"
    display_name = "Ekart Logistics"
    base_url = "https://app.elite.ekartlogistics.in"
    uses_token = True

    # API URL'S
    token_url = "integrations/v2/auth/token/{client_id}"
    serviceability_url = "data/v3/serviceability"
    rate_url = "data/pricing/estimate"
    create_order_url = "api/v1/package/create"
    cancel_order_url = "api/v1/package/cancel"
    track_order_url = "api/v1/track/{tracking_id}"

    async def fetch_token(self, partner_config: PartnerConfigModel):
        client_id = self.credential(partner_config, "client_id", "clientId")
        body = {
            "username": self.credential(partner_config, "username"),
            "password": self.credential(partner_config, "password"),
        }
        response = await self._send(
            "POST",
            self.url(partner_config, self.token_url.format(client_id=client_id)),
            idempotent=True,
            json=body,
        )
        response_data = self.json_body(response)
        return response_data.get("access_token"), response_data.get("expires_in")

    def auth_headers(self, partner_config: PartnerConfigModel, token: str = None) -> dict:
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    @staticmethod
    def service_type(mode: Optional[str]) -> str:
        return "EXPRESS" if (mode or "").lower() in AIR_MODES else "SURFACE"

    def lane_payload(self, pkg, delivery) -> dict:
        dimensions = pkg.get("dimensions") or {}
        is_cod = pkg.get("paymentType") == "cod"
        return {
            "pickupPincode": int(delivery["pickupPincode"]),
            "dropPincode": int(delivery["deliveryPincode"]),
            "invoiceAmount": pkg.get("codAmount") or 100,
            "weight": int(round(float(pkg["weight"]) * 1000)),
            "length": dimensions.get("length") or 10,
            "height": dimensions.get("height") or 10,
            "width": dimensions.get("width") or 10,
            "serviceType": self.service_type(pkg.get("mode")),
            "paymentType": "COD" if is_cod else "Prepaid",
            "codAmount": pkg.get("codAmount", 0) if is_cod else 0,
        }

    async def _calculate_rate(self, pkg, delivery, partner_config):
        payload = self.lane_payload(pkg, delivery)

        response = await self._request(
            "POST", self.serviceability_url, partner_config, idempotent=True, json=payload
        )
        serviceability = self.json_body(response)
        if not serviceability or (
            isinstance(serviceability, dict) and serviceability.get("status") is False
        ):
            raise self.rejected(serviceability, "Lane not serviceable by Ekart")

        response = await self._request(
            "POST", self.rate_url, partner_config, idempotent=True, json=payload
        )
        estimate = self.json_body(response)

        total = estimate.get("total") if isinstance(estimate, dict) else None
        if total is None:
            raise self.rejected(estimate, "Ekart returned no price for this lane")

        return {
            "total": round(float(total), 2),
            "freight": round(float(estimate.get("shippingCharge", 0) or 0), 2),
            "codCharges": round(float(estimate.get("codCharge", 0) or 0), 2),
            "gst": round(float(estimate.get("tax", 0) or 0), 2),
            "currency": "INR",
            "mode": "Express" if payload["serviceType"] == "EXPRESS" else "Surface",
            "serviceable": True,
            "estimatedDelivery": epoch_to_iso(estimate.get("edd")),
        }

    async def _book_shipment(self, shipment_details, partner_config):
        consignee = shipment_details["consignee"]
        pickup = shipment_details["pickup"]
        dimensions = shipment_details.get("dimensions") or {}
        is_cod = shipment_details["paymentType"] == "cod"

        # the pickup address has to be registered with Ekart beforehand
        pickup_alias = (partner_config.credentials or {}).get("pickupLocation") or pickup.get(
            "name"
        )

        body = {
            "seller_name": pickup.get("name"),
            "seller_address": " ".join(
                part for part in (pickup.get("address"), pickup.get("address2")) if part
            ),
            "seller_gst_tin": "",
            "consignee_name": consignee["name"],
            "consignee_gst_tin": "",
            "order_number": shipment_details["orderId"],
            "invoice_number": "INV_" + shipment_details["orderId"],
            "invoice_date": datetime.now(pytz.utc).strftime("%Y-%m-%d"),
            "products_desc": shipment_details["productDescription"],
            "category_of_goods": "General",
            "payment_mode": "COD" if is_cod else "Prepaid",
            "total_amount": shipment_details["declaredValue"],
            "tax_value": 0,
            "taxable_amount": shipment_details["declaredValue"],
            "commodity_value": str(shipment_details["declaredValue"]),
            "cod_amount": shipment_details["codAmount"] if is_cod else 0,
            "quantity": shipment_details["quantity"],
            "weight": int(round(float(shipment_details["weight"]) * 1000)),
            "length": round(float(dimensions.get("length") or 10)),
            "height": round(float(dimensions.get("height") or 10)),
            "width": round(float(dimensions.get("width") or 10)),
            "drop_location": {
                "name": consignee["name"],
                "address": " ".join(
                    part
                    for part in (consignee.get("address"), consignee.get("address2"))
                    if part
                ),
                "city": consignee.get("city"),
                "state": consignee.get("state"),
                "country": "India",
                "phone": consignee.get("phone"),
                "pin": int(consignee["pincode"]),
            },
            "pickup_location": {"name": pickup_alias},
            "return_location": {"name": pickup_alias},
        }

        response = await self._request(
            "PUT", self.create_order_url, partner_config, json=body
        )
        response_data = self.json_body(response)

        if response_data.get("status") is not True or not response_data.get("tracking_id"):
            raise ProviderRejected(
                response_data.get("description")
                or response_data.get("remark")
                or "Ekart did not accept the shipment",
                provider=self.code,
                details={"orderId": shipment_details["orderId"]},
            )

        tracking_id = str(response_data["tracking_id"])
        logger.info(
            extra=context_user_data.get(),
            msg=f"Ekart tracking id {tracking_id} assigned to {shipment_details['orderId']}",
        )

        barcodes = response_data.get("barcodes") or {}
        return {
            "awb": tracking_id,
            "orderId": shipment_details["orderId"],
            "providerReference": barcodes.get("wbn"),
        }

    async def _track_shipment(self, tracking_id, partner_config):
        # the tracking API is open, no token needed
        response = await self._send(
            "GET",
            self.url(
                partner_config, self.track_order_url.format(tracking_id=tracking_id)
            ),
            idempotent=True,
        )
        response_data = self.json_body(response)

        track = response_data.get("track") if isinstance(response_data, dict) else None
        if not track:
            raise ProviderRejected(
                "No tracking data for this AWB",
                provider=self.code,
                details={"awb": tracking_id},
            )

        mapped = self.map_status(status_mapping, track.get("status"))

        history = []
        for detail in track.get("details") or []:
            detail_status = self.map_status(status_mapping, detail.get("status"))
            history.append(
                {
                    "status": detail_status["status"],
                    "providerStatus": detail.get("status"),
                    "description": detail.get("desc"),
                    "location": detail.get("location"),
                    "timestamp": epoch_to_iso(detail.get("ctime")),
                }
            )

        return {
            "awb": tracking_id,
            "status": mapped["status"],
            "subStatus": mapped["sub_status"],
            "providerStatus": track.get("status"),
            "history": history,
            "estimatedDelivery": epoch_to_iso(response_data.get("edd")),
        }

    async def _cancel_shipment(self, tracking_id, partner_config):
        response = await self._request(
            "DELETE",
            self.cancel_order_url,
            partner_config,
            params={"tracking_id": tracking_id},
        )
        response_data = self.json_body(response)

        if response_data.get("status") is not True and response_data.get("success") is not True:
            raise self.rejected(response_data, "Ekart could not cancel the shipment")

        return {
            "awb": tracking_id,
            "cancelled": True,
            "message": response_data.get("remark")
            or response_data.get("message")
            or "Shipment cancelled",
        }
