from typing import Optional

from logger import logger
from context_manager.context import context_user_data

# schema
from modules.shipping_partner.shipping_partner_schema import PartnerConfigModel

# utils
from utils.datetime import parse_provider_timestamp
from utils.exception_handler import ProviderRejected

from shipping_partner.base import CourierAdapter
from .status_mapping import status_mapping, RETURN_STATUS_TYPES


AIR_MODES = ("air", "express", "premium")


def clean_text(text: Optional[str]) -> str:
    if not text:
        return ""
    # Delhivery rejects these in address fields
    for char in ("&", "#", "%", ";", "\\", '"'):
        text = text.replace(char, " ")
    return " ".join(text.split())


class Delhivery(CourierAdapter):
    code = "delhivery"
    display_name = "Delhivery"
    base_url = "https://track.delhivery.com"

    # API URL'S
    rate_url = "api/kinko/v1/invoice/charges/.json"
    create_order_url = "api/cmu/create.json"
    track_order_url = "api/v1/packages/json/"
    cancel_order_url = "api/p/edit"

    def auth_headers(self, partner_config: PartnerConfigModel, token: str = None) -> dict:
        api_token = self.credential(partner_config, "token", "apiToken", "api_token")
        return {
            "Authorization": "Token " + api_token,
            "Accept": "application/json",
        }

    async def _calculate_rate(self, pkg, delivery, partner_config):
        mode = (pkg.get("mode") or "Surface").lower()
        params = {
            "md": "E" if mode in AIR_MODES else "S",
            "ss": "Delivered",
            "o_pin": delivery["pickupPincode"],
            "d_pin": delivery["deliveryPincode"],
            "cgm": int(round(float(pkg["weight"]) * 1000)),
            "pt": "COD" if pkg.get("paymentType") == "cod" else "Pre-paid",
            "cod": pkg.get("codAmount", 0) if pkg.get("paymentType") == "cod" else 0,
        }

        response = await self._request(
            "GET", self.rate_url, partner_config, idempotent=True, params=params
        )
        body = self.json_body(response)

        charges = body[0] if isinstance(body, list) and body else None
        if not isinstance(charges, dict) or "total_amount" not in charges:
            raise self.rejected(body, "Lane not serviceable by Delhivery")

        tax_data = charges.get("tax_data")
        gst = None
        if isinstance(tax_data, dict):
            gst = round(float(tax_data.get("total", 0) or 0), 2)

        return {
            "total": round(float(charges["total_amount"]), 2),
            "freight": round(float(charges.get("charge_DL", 0) or 0), 2),
            "codCharges": round(float(charges.get("charge_COD", 0) or 0), 2),
            "gst": gst,
            "currency": "INR",
            "mode": "Express" if params["md"] == "E" else "Surface",
            "serviceable": True,
            "estimatedDelivery": None,
        }

    async def _book_shipment(self, shipment_details, partner_config):
        consignee = shipment_details["consignee"]
        pickup = shipment_details["pickup"]
        dimensions = shipment_details.get("dimensions") or {}
        is_cod = shipment_details["paymentType"] == "cod"

        make_data_string = {
            "shipments": [
                {
                    "name": consignee["name"],
                    "add": clean_text(consignee.get("address")),
                    "pin": consignee["pincode"],
                    "city": consignee.get("city"),
                    "state": consignee.get("state"),
                    "country": "India",
                    "phone": consignee.get("phone"),
                    "order": shipment_details["orderId"],
                    "payment_mode": "COD" if is_cod else "Pre-paid",
                    "products_desc": clean_text(shipment_details["productDescription"]),
                    "cod_amount": shipment_details["codAmount"] if is_cod else 0,
                    "total_amount": shipment_details["declaredValue"],
                    "quantity": shipment_details["quantity"],
                    "shipment_length": dimensions.get("length"),
                    "shipment_width": dimensions.get("width"),
                    "shipment_height": dimensions.get("height"),
                    "weight": float(shipment_details["weight"]) * 1000,
                    "shipping_mode": (
                        "Express"
                        if (shipment_details.get("mode") or "").lower() in AIR_MODES
                        else "Surface"
                    ),
                }
            ],
            "pickup_location": {
                "name": (partner_config.credentials or {}).get("pickupLocation")
                or pickup.get("name"),
                "add": clean_text(pickup.get("address")),
                "city": pickup.get("city"),
                "pin_code": pickup["pincode"],
                "country": "India",
                "phone": pickup.get("phone"),
            },
        }

        # Delhivery wants a form style body wrapping the JSON
        body = "format=json&data=" + self.dump(make_data_string)

        response = await self._request(
            "POST",
            self.create_order_url,
            partner_config,
            headers={"Content-Type": "application/json"},
            content=body,
        )
        response_data = self.json_body(response)

        packages = response_data.get("packages") or []
        package = packages[0] if packages else {}

        if package.get("status") != "Success" or not package.get("waybill"):
            remarks = package.get("remarks") or response_data.get("rmk")
            if isinstance(remarks, list):
                remarks = remarks[0] if remarks else None
            raise ProviderRejected(
                remarks or "Delhivery did not accept the shipment",
                provider=self.code,
                details={"orderId": shipment_details["orderId"]},
            )

        awb = str(package["waybill"])
        logger.info(
            extra=context_user_data.get(),
            msg=f"Delhivery AWB {awb} assigned to {shipment_details['orderId']}",
        )

        return {
            "awb": awb,
            "orderId": shipment_details["orderId"],
            "providerReference": package.get("refnum"),
        }

    async def _track_shipment(self, tracking_id, partner_config):
        response = await self._request(
            "GET",
            self.track_order_url,
            partner_config,
            idempotent=True,
            params={"waybill": tracking_id, "ref_ids": ""},
        )
        response_data = self.json_body(response)

        if "Error" in response_data:
            raise self.rejected(response_data["Error"], "Delhivery tracking failed")

        tracking_data = response_data.get("ShipmentData") or []
        if not tracking_data:
            raise ProviderRejected(
                "No tracking data for this AWB",
                provider=self.code,
                details={"awb": tracking_id},
            )

        shipment = tracking_data[0].get("Shipment", {})
        current = shipment.get("Status", {})

        mapped = self.map_status(status_mapping, current.get("Status"))
        if current.get("StatusType") in RETURN_STATUS_TYPES:
            mapped = {"status": "rto", "sub_status": mapped["sub_status"]}

        history = []
        for scan in shipment.get("Scans") or []:
            detail = scan.get("ScanDetail", {})
            scan_status = self.map_status(status_mapping, detail.get("Scan"))
            history.append(
                {
                    "status": scan_status["status"],
                    "providerStatus": detail.get("Scan"),
                    "description": detail.get("Instructions"),
                    "location": detail.get("ScannedLocation"),
                    "timestamp": parse_provider_timestamp(
                        detail.get("StatusDateTime") or detail.get("ScanDateTime")
                    ),
                }
            )

        return {
            "awb": str(shipment.get("AWB") or tracking_id),
            "status": mapped["status"],
            "subStatus": mapped["sub_status"],
            "providerStatus": current.get("Status"),
            "history": history,
            "estimatedDelivery": parse_provider_timestamp(
                shipment.get("ExpectedDeliveryDate")
                or shipment.get("PromisedDeliveryDate")
            ),
        }

    async def _cancel_shipment(self, tracking_id, partner_config):
        response = await self._request(
            "POST",
            self.cancel_order_url,
            partner_config,
            json={"waybill": tracking_id, "cancellation": "true"},
        )
        response_data = self.json_body(response)

        if response_data.get("status") in (False, "Failure", "failure"):
            raise self.rejected(response_data, "Delhivery could not cancel the shipment")

        return {
            "awb": tracking_id,
            "cancelled": True,
            "message": response_data.get("remark") or "Shipment cancelled",
        }
