"""
Boundary normalisation for loosely shaped caller input.

Callers send the same facts under many names (``fromPincode``,
``pickup_pincode``, ``orderType``, ``shipment_value`` ...). Everything below
the service facade consumes only the canonical names produced here.
"""

from typing import Any, Dict, Optional

from utils.exception_handler import ValidationError


# canonical field -> accepted spellings, first present wins
RATE_FIELD_ALIASES = {
    "pickupPincode": (
        "pickupPincode",
        "pickup_pincode",
        "fromPincode",
        "from_pincode",
        "originPincode",
        "sourcePincode",
    ),
    "deliveryPincode": (
        "deliveryPincode",
        "delivery_pincode",
        "toPincode",
        "to_pincode",
        "destinationPincode",
    ),
    "paymentType": ("paymentType", "payment_type", "orderType", "paymentMode", "payment_mode"),
    "codCollectableAmount": (
        "codCollectableAmount",
        "codAmount",
        "cod_amount",
        "orderValue",
        "declaredValue",
        "shipment_value",
        "collectableAmount",
    ),
    "includeRto": ("includeRto", "includeRTO", "include_rto", "rto"),
    "weight": ("weight", "actualWeight", "actual_weight", "weightKg"),
    "zone": ("zone",),
    "courier": ("courier", "courierCode", "courier_code", "partner"),
    "mode": ("mode", "serviceType", "service_type"),
    "rateBand": ("rateBand", "rate_band"),
}

DIMENSION_ALIASES = {
    "length": ("length", "l"),
    "width": ("width", "breadth", "b", "w"),
    "height": ("height", "h"),
}

PAYMENT_TYPE_ALIASES = {
    "prepaid": "prepaid",
    "pre-paid": "prepaid",
    "pre paid": "prepaid",
    "pre_paid": "prepaid",
    "paid": "prepaid",
    "online": "prepaid",
    "cod": "cod",
    "cash on delivery": "cod",
    "cash_on_delivery": "cod",
    "collect": "cod",
}

ADDRESS_FIELD_ALIASES = {
    "name": ("name", "contactName", "contact_name", "fullName"),
    "phone": ("phone", "mobile", "contactNumber", "phoneNumber"),
    "email": ("email",),
    "address": ("address", "address1", "addressLine1", "line1", "street"),
    "address2": ("address2", "addressLine2", "line2", "landmark"),
    "city": ("city",),
    "state": ("state",),
    "pincode": ("pincode", "pinCode", "zip", "postalCode"),
}

SHIPMENT_FIELD_ALIASES = {
    "orderId": ("orderId", "order_id", "orderNumber", "referenceNumber"),
    "paymentType": RATE_FIELD_ALIASES["paymentType"],
    "codAmount": ("codAmount", "cod_amount", "codCollectableAmount", "collectableAmount"),
    "declaredValue": ("declaredValue", "declared_value", "orderValue", "shipment_value", "invoiceValue"),
    "weight": RATE_FIELD_ALIASES["weight"],
    "mode": RATE_FIELD_ALIASES["mode"],
    "productDescription": ("productDescription", "product_description", "description", "productName"),
    "quantity": ("quantity", "qty"),
}

PICKUP_ALIASES = ("pickup", "pickupAddress", "pickup_address", "shipper", "from")
CONSIGNEE_ALIASES = ("consignee", "deliveryAddress", "delivery_address", "customer", "to")


def _first(raw: Dict[str, Any], names) -> Any:
    for name in names:
        if name in raw and raw[name] not in (None, ""):
            return raw[name]
    return None


def normalize_payment_type(value: Optional[str]) -> str:
    if value is None:
        return "prepaid"
    key = str(value).strip().lower()
    payment_type = PAYMENT_TYPE_ALIASES.get(key)
    if payment_type is None:
        raise ValidationError(
            f"Unknown payment type: {value}", details={"paymentType": value}
        )
    return payment_type


def normalize_dimensions(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    source = raw.get("dimensions")
    if not isinstance(source, dict):
        source = raw

    dimensions = {
        field: _first(source, aliases) for field, aliases in DIMENSION_ALIASES.items()
    }
    if all(value is None for value in dimensions.values()):
        return None
    return dimensions


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "y")
    return bool(value)


def normalize_rate_request(raw: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise ValidationError("Rate request must be an object")

    request = {}
    for field, aliases in RATE_FIELD_ALIASES.items():
        value = _first(raw, aliases)
        if value is not None:
            request[field] = value

    for field in ("pickupPincode", "deliveryPincode"):
        if field in request:
            request[field] = str(request[field]).strip()

    request["paymentType"] = normalize_payment_type(request.get("paymentType"))
    if "includeRto" in request:
        request["includeRto"] = _as_bool(request["includeRto"])

    dimensions = normalize_dimensions(raw)
    if dimensions is not None:
        request["dimensions"] = dimensions

    return request


def normalize_address(raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    raw = raw or {}
    address = {
        field: _first(raw, aliases) for field, aliases in ADDRESS_FIELD_ALIASES.items()
    }
    if address["pincode"] is not None:
        address["pincode"] = str(address["pincode"]).strip()
    return address


def normalize_shipment_details(raw: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise ValidationError("Shipment details must be an object")

    details = {
        field: _first(raw, aliases) for field, aliases in SHIPMENT_FIELD_ALIASES.items()
    }
    details["paymentType"] = normalize_payment_type(details["paymentType"])
    details["dimensions"] = normalize_dimensions(raw)
    details["pickup"] = normalize_address(_first(raw, PICKUP_ALIASES))
    details["consignee"] = normalize_address(_first(raw, CONSIGNEE_ALIASES))

    if details["pickup"]["pincode"] is None:
        details["pickup"]["pincode"] = _first(raw, RATE_FIELD_ALIASES["pickupPincode"])
    if details["consignee"]["pincode"] is None:
        details["consignee"]["pincode"] = _first(
            raw, RATE_FIELD_ALIASES["deliveryPincode"]
        )

    missing = [
        name
        for name, value in (
            ("orderId", details["orderId"]),
            ("weight", details["weight"]),
            ("pickup.pincode", details["pickup"]["pincode"]),
            ("consignee.pincode", details["consignee"]["pincode"]),
            ("consignee.name", details["consignee"]["name"]),
        )
        if value in (None, "")
    ]
    if missing:
        raise ValidationError(
            "Missing shipment fields: " + ", ".join(missing),
            details={"missing": missing},
        )

    try:
        details["weight"] = float(details["weight"])
        details["codAmount"] = float(details["codAmount"] or 0)
        details["declaredValue"] = float(details["declaredValue"] or 0)
        details["quantity"] = int(details["quantity"] or 1)
    except (TypeError, ValueError):
        raise ValidationError("weight, codAmount, declaredValue must be numeric")

    if details["paymentType"] == "cod" and details["codAmount"] <= 0:
        details["codAmount"] = details["declaredValue"]

    details["orderId"] = str(details["orderId"])
    details["productDescription"] = details["productDescription"] or "General goods"
    return details
