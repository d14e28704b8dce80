import re
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from logger import logger
from context_manager.context import context_user_data

# schema
from modules.shipping_partner.shipping_partner_schema import PartnerConfigModel

# utils
from utils.datetime import parse_provider_timestamp
from utils.exception_handler import ProviderRejected

from shipping_partner.base import CourierAdapter
from shipping_partner.error_normalizer import MalformedResponse
from .status_mapping import status_mapping


def clean_text(text: Optional[str]) -> str:
    if not text:
        return ""
    text = re.sub(r"[^a-zA-Z0-9\s,./-]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def _field_map(element) -> Dict[str, str]:
    return {
        field.get("name"): (field.text or "").strip()
        for field in element.findall("field")
        if field.get("name")
    }


def parse_tracking_xml(text: str) -> Optional[dict]:
    """
    Read the awb object of a track_me reply. Scan stages come back newest
    first and are returned oldest first.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedResponse(f"Ecom Express tracking XML could not be parsed: {e}")

    awb = root.find(".//object[@model='awb']")
    if awb is None:
        return None

    scans: List[dict] = [
        _field_map(scan) for scan in awb.iter("object") if scan.get("model") == "scan_stages"
    ]
    scans.reverse()
    return {"awb": _field_map(awb), "scans": scans}


class Ecomexpress(CourierAdapter):
    code = "ecomexpress"
    display_name = "Ecom Express"
    base_url = "https://api.ecomexpress.in"

    # API URL'S
    pincode_url = "apiv2/pincode/"
    fetch_awb_url = "apiv2/fetch_awb/"
    create_order_url = "apiv2/manifest_awb/"
    cancel_order_url = "apiv2/cancel_awb/"
    track_order_url = "https://plapi.ecomexpress.in/track_me/api/mawbd/"

    def auth_form(self, partner_config: PartnerConfigModel) -> dict:
        # Ecom Express takes the account credentials on every call
        return {
            "username": self.credential(partner_config, "username"),
            "password": self.credential(partner_config, "password"),
        }

    async def is_serviceable(self, pincode: str, partner_config: PartnerConfigModel) -> bool:
        form = self.auth_form(partner_config)
        form["pincode"] = pincode

        response = await self._request(
            "POST", self.pincode_url, partner_config, idempotent=True, data=form
        )
        body = self.json_body(response)

        entries = body if isinstance(body, list) else [body]
        for entry in entries:
            if isinstance(entry, dict) and str(entry.get("pincode")) == str(pincode):
                return entry.get("active", True) not in (False, "false", 0)
        return False

    async def _calculate_rate(self, pkg, delivery, partner_config):
        for pincode in (delivery["pickupPincode"], delivery["deliveryPincode"]):
            if not await self.is_serviceable(pincode, partner_config):
                raise ProviderRejected(
                    f"Pincode {pincode} not serviceable by Ecom Express",
                    provider=self.code,
                    details={"pincode": pincode},
                )

        # the pincode API has no price, pricing comes from cards or defaults
        return {
            "total": None,
            "currency": "INR",
            "mode": "Surface",
            "serviceable": True,
            "estimatedDelivery": None,
        }

    async def generate_awb(self, payment_type: str, partner_config: PartnerConfigModel) -> str:
        form = self.auth_form(partner_config)
        form.update({"count": 1, "type": "COD" if payment_type == "cod" else "PPD"})

        response = await self._request(
            "POST", self.fetch_awb_url, partner_config, data=form
        )
        body = self.json_body(response)

        if body.get("success") != "yes" or not body.get("awb"):
            raise self.rejected(body, "Ecom Express could not allocate an AWB")
        return str(body["awb"][0])

    async def _book_shipment(self, shipment_details, partner_config):
        consignee = shipment_details["consignee"]
        pickup = shipment_details["pickup"]
        dimensions = shipment_details.get("dimensions") or {}
        is_cod = shipment_details["paymentType"] == "cod"

        awb = await self.generate_awb(shipment_details["paymentType"], partner_config)

        body = {
            "AWB_NUMBER": awb,
            "ORDER_NUMBER": shipment_details["orderId"],
            "PRODUCT": "COD" if is_cod else "PPD",
            "CONSIGNEE": consignee["name"],
            "CONSIGNEE_ADDRESS1": clean_text(consignee.get("address")),
            "CONSIGNEE_ADDRESS2": clean_text(consignee.get("address2")),
            "CONSIGNEE_ADDRESS3": "",
            "DESTINATION_CITY": consignee.get("city"),
            "PINCODE": consignee["pincode"],
            "STATE": consignee.get("state"),
            "MOBILE": consignee.get("phone"),
            "TELEPHONE": "",
            "ITEM_DESCRIPTION": shipment_details["productDescription"],
            "PIECES": shipment_details["quantity"],
            "COLLECTABLE_VALUE": shipment_details["codAmount"] if is_cod else 0,
            "DECLARED_VALUE": shipment_details["declaredValue"],
            "ACTUAL_WEIGHT": float(shipment_details["weight"]),
            "LENGTH": float(dimensions.get("length") or 0),
            "BREADTH": float(dimensions.get("width") or 0),
            "HEIGHT": float(dimensions.get("height") or 0),
            "PICKUP_NAME": pickup.get("name"),
            "PICKUP_ADDRESS_LINE1": clean_text(pickup.get("address")),
            "PICKUP_ADDRESS_LINE2": clean_text(pickup.get("address2")),
            "PICKUP_PINCODE": pickup["pincode"],
            "PICKUP_PHONE": pickup.get("phone"),
            "PICKUP_MOBILE": pickup.get("phone"),
            "RETURN_NAME": pickup.get("name"),
            "RETURN_ADDRESS_LINE1": clean_text(pickup.get("address")),
            "RETURN_ADDRESS_LINE2": clean_text(pickup.get("address2")),
            "RETURN_PINCODE": pickup["pincode"],
            "RETURN_PHONE": pickup.get("phone"),
            "RETURN_MOBILE": pickup.get("phone"),
            "DG_SHIPMENT": "false",
        }

        form = self.auth_form(partner_config)
        form["json_input"] = self.dump([body])

        response = await self._request(
            "POST", self.create_order_url, partner_config, data=form
        )
        response_data = self.json_body(response)

        shipments = response_data.get("shipments") or []
        shipment = shipments[0] if shipments else {}
        if shipment.get("success") is not True:
            raise ProviderRejected(
                shipment.get("reason") or "Ecom Express did not accept the shipment",
                provider=self.code,
                details={"orderId": shipment_details["orderId"], "awb": awb},
            )

        logger.info(
            extra=context_user_data.get(),
            msg=f"Ecom Express AWB {awb} manifested for {shipment_details['orderId']}",
        )

        return {
            "awb": str(shipment.get("awb") or awb),
            "orderId": shipment_details["orderId"],
            "providerReference": shipment.get("order_number"),
        }

    async def _track_shipment(self, tracking_id, partner_config):
        params = self.auth_form(partner_config)
        params["awb"] = tracking_id

        response = await self._request(
            "GET",
            self.track_order_url,
            partner_config,
            idempotent=True,
            headers={"x-webhook-version": "2.0"},
            params=params,
        )

        tracking = parse_tracking_xml(response.text)
        if tracking is None:
            raise ProviderRejected(
                "No tracking data for this AWB",
                provider=self.code,
                details={"awb": tracking_id},
            )

        awb = tracking["awb"]
        reason_code = awb.get("reason_code_number")
        mapped = self.map_status(
            status_mapping,
            reason_code if reason_code in status_mapping else awb.get("status"),
        )

        history = []
        for scan in tracking["scans"]:
            scan_status = self.map_status(
                status_mapping, scan.get("reason_code_number") or scan.get("status")
            )
            history.append(
                {
                    "status": scan_status["status"],
                    "providerStatus": scan.get("reason_code_number"),
                    "description": scan.get("status"),
                    "location": scan.get("city_name") or scan.get("location_city"),
                    "timestamp": parse_provider_timestamp(scan.get("updated_on")),
                }
            )

        return {
            "awb": awb.get("awb_number") or tracking_id,
            "status": mapped["status"],
            "subStatus": mapped["sub_status"],
            "providerStatus": awb.get("status") or reason_code,
            "history": history,
            "estimatedDelivery": parse_provider_timestamp(awb.get("expected_date")),
        }

    async def _cancel_shipment(self, tracking_id, partner_config):
        form = self.auth_form(partner_config)
        form["awbs"] = tracking_id

        response = await self._request(
            "POST", self.cancel_order_url, partner_config, data=form
        )
        response_data = self.json_body(response)

        result = response_data[0] if isinstance(response_data, list) and response_data else {}
        if result.get("success") is not True:
            raise ProviderRejected(
                result.get("reason") or "Ecom Express could not cancel the shipment",
                provider=self.code,
                details={"awb": tracking_id},
            )

        return {
            "awb": tracking_id,
            "cancelled": True,
            "message": result.get("reason") or "Shipment cancelled",
        }
