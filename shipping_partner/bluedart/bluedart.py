import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Optional

# schema
from modules.shipping_partner.shipping_partner_schema import PartnerConfigModel

# utils
from utils.datetime import parse_provider_timestamp
from utils.exception_handler import ProviderRejected

from shipping_partner.base import CourierAdapter
from shipping_partner.error_normalizer import MalformedResponse
from .status_mapping import status_mapping, NOT_FOUND_STATUS_TYPE


AIR_MODES = ("air", "express", "premium")


def clean_text(text: Optional[str]) -> str:
    if not text:
        return ""
    return " ".join(text.replace("&", " and ").replace("#", " ").split())


def _text(element, tag: str) -> Optional[str]:
    found = element.find(tag) if element is not None else None
    if found is None or found.text is None:
        return None
    return found.text.strip() or None


class Bluedart(CourierAdapter):
    code = "bluedart"
    display_name = "BlueDart"
    base_url = "https://apigateway.bluedart.com/in/transportation"
    uses_token = True

    # API URL'S
    token_url = "token/v1/login"
    transit_time_url = "transit/v1/GetDomesticTransitTimeForPinCodeandProduct"
    create_order_url = "waybill/v1/GenerateWayBill"
    cancel_order_url = "waybill/v1/CancelWaybill"
    track_order_url = "tracking/v1/shipment"

    async def fetch_token(self, partner_config: PartnerConfigModel):
        headers = {
            "ClientID": self.credential(partner_config, "client_id", "clientId", "ClientID"),
            "clientSecret": self.credential(
                partner_config, "client_secret", "clientSecret"
            ),
        }
        response = await self._send(
            "GET", self.url(partner_config, self.token_url), idempotent=True, headers=headers
        )
        body = self.json_body(response)
        return body.get("JWTToken"), body.get("expires_in")

    def auth_headers(self, partner_config: PartnerConfigModel, token: str = None) -> dict:
        return {"JWTToken": token, "Content-Type": "application/json"}

    def profile(self, partner_config: PartnerConfigModel) -> dict:
        return {
            "Api_type": "S",
            "LicenceKey": self.credential(partner_config, "licence_key", "license_key", "licenseKey"),
            "LoginID": self.credential(partner_config, "login_id", "loginId"),
        }

    @staticmethod
    def product_codes(mode: Optional[str], payment_type: str):
        product = "A" if (mode or "").lower() in AIR_MODES else "E"
        sub_product = "C" if payment_type == "cod" else "P"
        return product, sub_product

    @staticmethod
    def wcf_date(moment: datetime = None) -> str:
        moment = moment or datetime.now()
        return f"/Date({int(moment.timestamp() * 1000)})/"

    @staticmethod
    def check_result(result, default: str, provider: str):
        if not isinstance(result, dict):
            raise MalformedResponse(f"BlueDart response missing result: {result!r}")
        if result.get("IsError"):
            statuses = result.get("Status") or []
            message = result.get("ErrorMessage")
            if statuses and isinstance(statuses, list):
                message = statuses[0].get("StatusInformation") or message
            raise ProviderRejected(message or default, provider=provider)
        return result

    async def _calculate_rate(self, pkg, delivery, partner_config):
        product, sub_product = self.product_codes(pkg.get("mode"), pkg.get("paymentType"))
        body = {
            "pPinCodeFrom": delivery["pickupPincode"],
            "pPinCodeTo": delivery["deliveryPincode"],
            "pProductCode": product,
            "pSubProductCode": sub_product,
            "pPudate": self.wcf_date(),
            "pPickupTime": "16:00",
            "profile": self.profile(partner_config),
        }

        response = await self._request(
            "POST", self.transit_time_url, partner_config, idempotent=True, json=body
        )
        result = self.check_result(
            self.json_body(response).get(
                "GetDomesticTransitTimeForPinCodeandProductResult"
            ),
            "Lane not serviceable by BlueDart",
            self.code,
        )

        # the transit finder confirms serviceability only, BlueDart has no price API
        return {
            "total": None,
            "currency": "INR",
            "mode": "Air" if product == "A" else "Surface",
            "serviceable": True,
            "estimatedDelivery": parse_provider_timestamp(
                result.get("ExpectedDateDelivery")
            ),
        }

    async def _book_shipment(self, shipment_details, partner_config):
        consignee = shipment_details["consignee"]
        pickup = shipment_details["pickup"]
        dimensions = shipment_details.get("dimensions") or {}
        is_cod = shipment_details["paymentType"] == "cod"
        product, sub_product = self.product_codes(
            shipment_details.get("mode"), shipment_details["paymentType"]
        )

        consignee_address = clean_text(consignee.get("address"))
        pickup_address = clean_text(pickup.get("address"))

        body = {
            "Request": {
                "Consignee": {
                    "ConsigneeAddress1": consignee_address,
                    "ConsigneeAddress2": clean_text(consignee.get("address2")),
                    "ConsigneeFullAddress": consignee_address,
                    "ConsigneeMobile": consignee.get("phone"),
                    "ConsigneeName": consignee["name"],
                    "ConsigneePincode": consignee["pincode"],
                    "ConsigneeEmailID": consignee.get("email") or "",
                },
                "Returnadds": {
                    "ReturnAddress1": pickup_address,
                    "ReturnContact": clean_text(pickup.get("name")),
                    "ReturnMobile": pickup.get("phone"),
                    "ReturnPincode": pickup["pincode"],
                },
                "Services": {
                    "ActualWeight": float(shipment_details["weight"]),
                    "CollectableAmount": str(shipment_details["codAmount"]) if is_cod else "0",
                    "CreditReferenceNo": shipment_details["orderId"],
                    "DeclaredValue": str(shipment_details["declaredValue"]),
                    "Dimensions": [
                        {
                            "Breadth": dimensions.get("width") or 0,
                            "Count": 1,
                            "Height": dimensions.get("height") or 0,
                            "Length": dimensions.get("length") or 0,
                        }
                    ],
                    "ItemCount": shipment_details["quantity"],
                    "PDFOutputNotRequired": True,
                    "PackType": "L",
                    "PickupDate": self.wcf_date(),
                    "PickupTime": "1400",
                    "PieceCount": 1,
                    "RegisterPickup": True,
                    "ProductCode": product,
                    "ProductType": 1,
                    "SubProductCode": sub_product,
                    "itemdtl": [
                        {
                            "ItemName": shipment_details["productDescription"],
                            "ItemValue": str(shipment_details["declaredValue"]),
                            "Itemquantity": str(shipment_details["quantity"]),
                        }
                    ],
                },
                "Shipper": {
                    "CustomerAddress1": pickup_address,
                    "CustomerCode": self.credential(
                        partner_config, "customer_code", "client_code", "customerCode"
                    ),
                    "CustomerMobile": pickup.get("phone"),
                    "CustomerName": pickup.get("name"),
                    "CustomerPincode": pickup["pincode"],
                    "OriginArea": (partner_config.credentials or {}).get("area")
                    or (partner_config.credentials or {}).get("origin_area", "DEL"),
                    "IsToPayCustomer": False,
                },
            },
            "Profile": self.profile(partner_config),
        }

        response = await self._request(
            "POST", self.create_order_url, partner_config, json=body
        )
        result = self.check_result(
            self.json_body(response).get("GenerateWayBillResult"),
            "BlueDart did not accept the shipment",
            self.code,
        )
        if not result.get("AWBNo"):
            raise ProviderRejected("BlueDart returned no AWB", provider=self.code)

        return {
            "awb": str(result["AWBNo"]),
            "orderId": shipment_details["orderId"],
            "providerReference": result.get("TokenNumber"),
        }

    def parse_tracking_xml(self, xml_text: str, tracking_id: str) -> dict:
        root = ET.fromstring(xml_text)
        shipment = root.find("Shipment") if root.tag != "Shipment" else root
        if shipment is None:
            raise MalformedResponse("BlueDart tracking XML has no Shipment element")

        status_type = _text(shipment, "StatusType")
        status_text = _text(shipment, "Status")
        if status_type == NOT_FOUND_STATUS_TYPE:
            raise ProviderRejected(
                status_text or "Waybill not found",
                provider=self.code,
                details={"awb": tracking_id},
            )

        mapped = status_mapping.get(status_type) or self.map_status(
            status_mapping, status_text
        )

        history = []
        for scan in shipment.iter("ScanDetail"):
            scan_text = _text(scan, "Scan")
            scan_status = status_mapping.get(_text(scan, "ScanType")) or self.map_status(
                status_mapping, scan_text
            )
            moment = " ".join(
                part for part in (_text(scan, "ScanDate"), _text(scan, "ScanTime")) if part
            )
            history.append(
                {
                    "status": scan_status["status"],
                    "providerStatus": scan_text,
                    "description": _text(scan, "ScanCode"),
                    "location": _text(scan, "ScannedLocation"),
                    "timestamp": parse_provider_timestamp(moment),
                }
            )

        return {
            "awb": shipment.get("WaybillNo") or tracking_id,
            "status": mapped["status"],
            "subStatus": mapped["sub_status"],
            "providerStatus": status_text,
            "history": history,
            "estimatedDelivery": parse_provider_timestamp(
                _text(shipment, "ExpectedDeliveryDate") or _text(shipment, "ExpectedDelivery")
            ),
        }

    async def _track_shipment(self, tracking_id, partner_config):
        params = {
            "handler": "tnt",
            "action": "custawbquery",
            "loginid": self.credential(partner_config, "login_id", "loginId"),
            "awb": "awb",
            "numbers": tracking_id,
            "format": "xml",
            "lickey": self.credential(
                partner_config, "licence_key", "license_key", "licenseKey"
            ),
            "verno": "1",
            "scan": "1",
        }
        response = await self._request(
            "GET",
            self.track_order_url,
            partner_config,
            idempotent=True,
            params=params,
            headers={"Accept": "application/xml"},
        )
        return self.parse_tracking_xml(response.text, tracking_id)

    async def _cancel_shipment(self, tracking_id, partner_config):
        body = {"Request": {"AWBNo": tracking_id}, "Profile": self.profile(partner_config)}
        response = await self._request(
            "POST", self.cancel_order_url, partner_config, json=body
        )
        result = self.check_result(
            self.json_body(response).get("CancelWaybillResult"),
            "BlueDart could not cancel the waybill",
            self.code,
        )
        statuses = result.get("Status") or [{}]
        return {
            "awb": tracking_id,
            "cancelled": True,
            "message": statuses[0].get("StatusInformation") or "Waybill cancelled",
        }
