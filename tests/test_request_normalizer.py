import pytest

from modules.serviceability.request_normalizer import (
    normalize_payment_type,
    normalize_rate_request,
    normalize_shipment_details,
)
from utils.exception_handler import ValidationError


def test_rate_request_aliases():
    request = normalize_rate_request(
        {
            "fromPincode": 110001,
            "to_pincode": " 560001 ",
            "orderType": "Cash on Delivery",
            "shipment_value": 1500,
            "actualWeight": 1.2,
            "serviceType": "surface",
            "rto": "yes",
            "l": 10,
            "breadth": 8,
            "h": 4,
        }
    )

    assert request == {
        "pickupPincode": "110001",
        "deliveryPincode": "560001",
        "paymentType": "cod",
        "codCollectableAmount": 1500,
        "weight": 1.2,
        "mode": "surface",
        "includeRto": True,
        "dimensions": {"length": 10, "width": 8, "height": 4},
    }


def test_canonical_names_win_over_aliases():
    request = normalize_rate_request(
        {"pickupPincode": "110001", "fromPincode": "400001", "weight": 1}
    )
    assert request["pickupPincode"] == "110001"


def test_payment_type_defaults_to_prepaid():
    assert normalize_rate_request({"weight": 1})["paymentType"] == "prepaid"


def test_nested_dimensions():
    request = normalize_rate_request(
        {"weight": 1, "dimensions": {"length": 20, "width": 10, "height": 5}}
    )
    assert request["dimensions"] == {"length": 20, "width": 10, "height": 5}


def test_no_dimensions():
    assert "dimensions" not in normalize_rate_request({"weight": 1})


@pytest.mark.parametrize(
    "raw, expected",
    [("Prepaid", "prepaid"), ("pre-paid", "prepaid"), ("COD", "cod"), ("online", "prepaid")],
)
def test_payment_type_spellings(raw, expected):
    assert normalize_payment_type(raw) == expected


def test_unknown_payment_type():
    with pytest.raises(ValidationError):
        normalize_payment_type("barter")


def test_rate_request_must_be_an_object():
    with pytest.raises(ValidationError):
        normalize_rate_request(["weight", 1])


def test_shipment_details():
    details = normalize_shipment_details(
        {
            "order_id": 5012,
            "payment_mode": "cod",
            "orderValue": "899",
            "weight": "0.8",
            "qty": "2",
            "pickupAddress": {"contactName": "WH", "pinCode": 110020, "address1": "Okhla"},
            "customer": {"fullName": "Asha", "zip": "560001", "mobile": "9000000000"},
        }
    )

    assert details["orderId"] == "5012"
    assert details["weight"] == 0.8
    assert details["quantity"] == 2
    assert details["declaredValue"] == 899
    # cod without an explicit amount collects the declared value
    assert details["codAmount"] == 899
    assert details["pickup"]["pincode"] == "110020"
    assert details["pickup"]["address"] == "Okhla"
    assert details["consignee"]["name"] == "Asha"
    assert details["consignee"]["phone"] == "9000000000"
    assert details["productDescription"] == "General goods"
    assert details["dimensions"] is None


def test_shipment_pincodes_fall_back_to_top_level():
    details = normalize_shipment_details(
        {
            "orderId": "A1",
            "weight": 1,
            "pickupPincode": "110001",
            "deliveryPincode": "400001",
            "consignee": {"name": "Ravi"},
        }
    )

    assert details["pickup"]["pincode"] == "110001"
    assert details["consignee"]["pincode"] == "400001"
    assert details["paymentType"] == "prepaid"


def test_shipment_missing_fields_are_listed():
    with pytest.raises(ValidationError) as excinfo:
        normalize_shipment_details({"weight": 1})

    assert excinfo.value.details["missing"] == [
        "orderId",
        "pickup.pincode",
        "consignee.pincode",
        "consignee.name",
    ]


def test_shipment_numbers_must_be_numeric():
    with pytest.raises(ValidationError):
        normalize_shipment_details(
            {
                "orderId": "A1",
                "weight": "heavy",
                "pickupPincode": "110001",
                "deliveryPincode": "400001",
                "consignee": {"name": "Ravi"},
            }
        )
