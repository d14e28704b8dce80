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


AIR_MODES = ("air", "express", "premium")

# DTDC issues tracking tokens valid for a day
TOKEN_LIFETIME = 24 * 60 * 60


def _fields(element) -> Dict[str, str]:
    return {
        field.get("name"): (field.get("value") or "").strip()
        for field in element.findall("FIELD")
        if field.get("name")
    }


def parse_tracking_xml(text: str) -> dict:
    """
    Split a DTDC XMLCnTrk reply into its header fields and the list of
    CNACTION events, oldest first.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedResponse(f"DTDC tracking XML could not be parsed: {e}")

    found = root.find(".//CNTRACK")
    if found is not None and (found.text or "").strip().lower() == "false":
        return {"found": False, "header": {}, "events": []}

    actions = list(root.iter("CNACTION"))
    action_fields = {id(field) for action in actions for field in action.iter("FIELD")}

    header = {
        field.get("name"): (field.get("value") or "").strip()
        for field in root.iter("FIELD")
        if id(field) not in action_fields and field.get("name")
    }
    events = [_fields(action) for action in actions]

    return {"found": bool(header or events), "header": header, "events": events}


def action_timestamp(date: Optional[str], time: Optional[str]) -> Optional[str]:
    if not date:
        return None
    # strActionDate ddmmyyyy, strActionTime HHMM
    return parse_provider_timestamp(f"{date} {time or '0000'}")


class Dtdc(CourierAdapter):
    code = "dtdc"
    display_name = "DTDC"
    base_url = "https://blktracksvc.dtdc.com"
    uses_token = True

    # API URL'S
    token_url = "dtdc-api/api/dtdc/authenticate"
    rate_url = "dtdc-api/rate/calculate"
    track_order_url = "dtdc-api/rest/XMLCnTrk/getDetails"
    create_order_url = (
        "https://dtdcapi.shipsy.io/api/customer/integration/consignment/softdata"
    )
    cancel_order_url = (
        "https://dtdcapi.shipsy.io/api/customer/integration/consignment/cancel"
    )

    async def fetch_token(self, partner_config: PartnerConfigModel):
        params = {
            "username": self.credential(partner_config, "username"),
            "password": self.credential(partner_config, "password"),
        }
        response = await self._send(
            "GET",
            self.url(partner_config, self.token_url),
            idempotent=True,
            params=params,
        )

        # the token comes back as a bare string, newer accounts wrap it in JSON
        token = response.text.strip().strip('"')
        if token.startswith("{"):
            token = self.json_body(response).get("token")
        return token, TOKEN_LIFETIME

    def auth_headers(self, partner_config: PartnerConfigModel, token: str = None) -> dict:
        return {"X-Access-Token": token}

    def shipsy_headers(self, partner_config: PartnerConfigModel) -> dict:
        return {
            "api-key": self.credential(partner_config, "api_key", "apiKey"),
            "Content-Type": "application/json",
        }

    @staticmethod
    def service_type(mode: Optional[str]) -> str:
        return "B2C PRIORITY" if (mode or "").lower() in AIR_MODES else "B2C SMART EXPRESS"

    async def _calculate_rate(self, pkg, delivery, partner_config):
        is_cod = pkg.get("paymentType") == "cod"
        body = {
            "orgPincode": delivery["pickupPincode"],
            "desPincode": delivery["deliveryPincode"],
            "weight": float(pkg["weight"]),
            "serviceType": self.service_type(pkg.get("mode")),
            "paymentMode": "COD" if is_cod else "PREPAID",
            "codAmount": pkg.get("codAmount", 0) if is_cod else 0,
        }

        response = await self._request(
            "POST", self.rate_url, partner_config, idempotent=True, json=body
        )
        response_data = self.json_body(response)

        if str(response_data.get("status", "")).upper() not in ("SUCCESS", "OK"):
            raise self.rejected(response_data, "Lane not serviceable by DTDC")

        data = response_data.get("data") or {}
        if data.get("serviceable") is False or "totalCharge" not in data:
            raise self.rejected(response_data, "Lane not serviceable by DTDC")

        return {
            "total": round(float(data["totalCharge"]), 2),
            "freight": round(float(data.get("freightCharge", 0) or 0), 2),
            "codCharges": round(float(data.get("codCharge", 0) or 0), 2),
            "gst": round(float(data.get("gst", 0) or 0), 2),
            "currency": "INR",
            "mode": "Air" if body["serviceType"] == "B2C PRIORITY" else "Surface",
            "serviceable": True,
            "estimatedDelivery": data.get("tat"),
        }

    async def _book_shipment(self, shipment_details, partner_config):
        consignee = shipment_details["consignee"]
        pickup = shipment_details["pickup"]
        dimensions = shipment_details.get("dimensions") or {}
        is_cod = shipment_details["paymentType"] == "cod"

        body = {
            "consignments": [
                {
                    "customer_code": self.credential(
                        partner_config, "customer_code", "customerCode"
                    ),
                    "service_type_id": self.service_type(shipment_details.get("mode")),
                    "load_type": "NON-DOCUMENT",
                    "description": shipment_details["productDescription"],
                    "dimension_unit": "cm",
                    "length": float(dimensions.get("length") or 0),
                    "width": float(dimensions.get("width") or 0),
                    "height": float(dimensions.get("height") or 0),
                    "weight_unit": "kg",
                    "weight": float(shipment_details["weight"]),
                    "declared_value": shipment_details["declaredValue"],
                    "num_pieces": shipment_details["quantity"],
                    "origin_details": {
                        "name": pickup.get("name"),
                        "phone": pickup.get("phone"),
                        "alternate_phone": pickup.get("phone"),
                        "address_line_1": pickup.get("address"),
                        "address_line_2": pickup.get("address2") or "",
                        "pincode": pickup["pincode"],
                        "city": pickup.get("city"),
                        "state": pickup.get("state"),
                    },
                    "destination_details": {
                        "name": consignee["name"],
                        "phone": consignee.get("phone"),
                        "alternate_phone": consignee.get("phone"),
                        "address_line_1": consignee.get("address"),
                        "address_line_2": consignee.get("address2") or "",
                        "pincode": consignee["pincode"],
                        "city": consignee.get("city"),
                        "state": consignee.get("state"),
                    },
                    "customer_reference_number": shipment_details["orderId"],
                    "cod_collection_mode": "CASH" if is_cod else "",
                    "cod_amount": shipment_details["codAmount"] if is_cod else 0,
                    "commodity_id": "",
                    "reference_number": "",
                }
            ]
        }

        # softdata lives on the shipsy host and authenticates with the api key
        response = await self._send(
            "POST",
            self.create_order_url,
            headers=self.shipsy_headers(partner_config),
            json=body,
        )
        response_data = self.json_body(response)

        if response_data.get("status") != "OK":
            raise self.rejected(response_data, "DTDC did not accept the shipment")

        data = (response_data.get("data") or [{}])[0]
        if not data.get("success") or not data.get("reference_number"):
            raise ProviderRejected(
                data.get("message") or "DTDC did not accept the shipment",
                provider=self.code,
                details={"orderId": shipment_details["orderId"]},
            )

        awb = str(data["reference_number"])
        logger.info(
            extra=context_user_data.get(),
            msg=f"DTDC AWB {awb} assigned to {shipment_details['orderId']}",
        )

        return {
            "awb": awb,
            "orderId": shipment_details["orderId"],
            "providerReference": data.get("customer_reference_number"),
        }

    async def _track_shipment(self, tracking_id, partner_config):
        params = {
            "strcnno": tracking_id,
            "TrkType": "cnno",
            "addtnlDtl": "Y",
            "apikey": self.credential(partner_config, "api_token", "apiToken", "api_key"),
        }
        response = await self._request(
            "GET",
            self.track_order_url,
            partner_config,
            idempotent=True,
            headers={"Accept": "application/xml"},
            params=params,
        )

        tracking = parse_tracking_xml(response.text)
        if not tracking["found"]:
            raise ProviderRejected(
                "No tracking data for this AWB",
                provider=self.code,
                details={"awb": tracking_id},
            )

        header = tracking["header"]
        events: List[dict] = tracking["events"]

        provider_status = header.get("strStatus") or (
            events[-1].get("strCode") if events else None
        )
        mapped = self.map_status(status_mapping, provider_status)

        history = []
        for event in events:
            event_status = self.map_status(
                status_mapping, event.get("strCode") or event.get("strAction")
            )
            history.append(
                {
                    "status": event_status["status"],
                    "providerStatus": event.get("strCode"),
                    "description": event.get("strAction") or event.get("sTrRemarks"),
                    "location": event.get("strOrigin"),
                    "timestamp": action_timestamp(
                        event.get("strActionDate"), event.get("strActionTime")
                    ),
                }
            )

        return {
            "awb": header.get("strShipmentNo") or tracking_id,
            "status": mapped["status"],
            "subStatus": mapped["sub_status"],
            "providerStatus": provider_status,
            "history": history,
            "estimatedDelivery": parse_provider_timestamp(
                header.get("strExpectedDeliveryDate")
            ),
        }

    async def _cancel_shipment(self, tracking_id, partner_config):
        body = {
            "AWBNo": [tracking_id],
            "customerCode": self.credential(partner_config, "customer_code", "customerCode"),
        }
        response = await self._send(
            "POST",
            self.cancel_order_url,
            headers=self.shipsy_headers(partner_config),
            json=body,
        )
        response_data = self.json_body(response)

        if not response_data.get("success"):
            raise self.rejected(response_data, "DTDC could not cancel the shipment")

        return {
            "awb": tracking_id,
            "cancelled": True,
            "message": response_data.get("message") or "Shipment cancelled",
        }
