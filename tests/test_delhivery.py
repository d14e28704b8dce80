import httpx
import pytest

from shipping_partner.delhivery.delhivery import Delhivery, clean_text

from tests.conftest import MockProvider, partner_config


pytestmark = pytest.mark.anyio

RATE_PATH = "/api/kinko/v1/invoice/charges/.json"
CREATE_PATH = "/api/cmu/create.json"
TRACK_PATH = "/api/v1/packages/json/"
CANCEL_PATH = "/api/p/edit"

PKG = {"weight": 0.7, "paymentType": "prepaid", "mode": "Surface"}
LANE = {"pickupPincode": "110001", "deliveryPincode": "560001"}

SHIPMENT = {
    "orderId": "ORD-1",
    "paymentType": "cod",
    "codAmount": 1200,
    "declaredValue": 1200,
    "quantity": 1,
    "weight": 0.7,
    "productDescription": "Cotton shirt #2",
    "dimensions": {"length": 20, "width": 15, "height": 5},
    "consignee": {
        "name": "Asha Rao",
        "address": "12 MG Road; Apt 4",
        "pincode": "560001",
        "city": "Bengaluru",
        "state": "Karnataka",
        "phone": "9876543210",
    },
    "pickup": {
        "name": "Main Warehouse",
        "address": "Plot 7, Okhla",
        "pincode": "110020",
        "city": "New Delhi",
        "phone": "9123456780",
    },
}


@pytest.fixture
def provider():
    return MockProvider()


@pytest.fixture
def adapter(provider):
    return Delhivery(transport=provider.transport, timeout=2)


@pytest.fixture
def partner():
    return partner_config("delhivery")


async def test_rate_is_priced_from_the_invoice_api(adapter, provider, partner):
    provider.json(
        "GET",
        RATE_PATH,
        [{"total_amount": 118.0, "charge_DL": 90, "charge_COD": 0, "tax_data": {"total": 18}}],
    )

    result = await adapter.calculate_rate(PKG, LANE, partner)

    assert result["success"] is True
    assert result["provider"] == "delhivery"
    assert result["data"]["total"] == 118.0
    assert result["data"]["gst"] == 18.0
    assert result["data"]["mode"] == "Surface"

    request = provider.requests[0]
    assert request.headers["Authorization"] == "Token dl-token"
    assert request.url.params["cgm"] == "700"
    assert request.url.params["md"] == "S"
    assert request.url.params["pt"] == "Pre-paid"


async def test_unserviceable_lane_is_rejected(adapter, provider, partner):
    provider.json("GET", RATE_PATH, [])

    result = await adapter.calculate_rate(PKG, LANE, partner)

    assert result["success"] is False
    assert result["error"]["kind"] == "ProviderRejected"


async def test_missing_token_is_a_configuration_error(adapter, provider):
    result = await adapter.calculate_rate(
        PKG, LANE, partner_config("delhivery", credentials={})
    )

    assert result["error"]["kind"] == "ConfigurationError"
    assert provider.requests == []


async def test_booking_sends_cleaned_form_payload(adapter, provider, partner):
    provider.json(
        "POST",
        CREATE_PATH,
        {"packages": [{"status": "Success", "waybill": 1234567890, "refnum": "ORD-1"}]},
    )

    result = await adapter.book_shipment(SHIPMENT, partner)

    assert result["success"] is True
    assert result["data"] == {
        "awb": "1234567890",
        "orderId": "ORD-1",
        "providerReference": "ORD-1",
    }

    body = provider.requests[0].content.decode()
    assert body.startswith("format=json&data=")
    assert "12 MG Road Apt 4" in body
    assert '"payment_mode":"COD"' in body
    assert '"name":"WH-1"' in body


async def test_booking_rejection_carries_the_remarks(adapter, provider, partner):
    provider.json(
        "POST",
        CREATE_PATH,
        {"packages": [{"status": "Fail", "remarks": ["Duplicate order id"]}]},
    )

    result = await adapter.book_shipment(SHIPMENT, partner)

    assert result["error"]["kind"] == "ProviderRejected"
    assert result["error"]["message"] == "Duplicate order id"


async def test_booking_is_never_retried(adapter, provider, partner):
    provider.json("POST", CREATE_PATH, {"message": "upstream down"}, status_code=503)

    result = await adapter.book_shipment(SHIPMENT, partner)

    assert result["error"]["kind"] == "ProviderUnavailable"
    assert len(provider.calls(CREATE_PATH)) == 1


async def test_malformed_booking_reply_is_not_reported_as_transient(adapter, provider, partner):
    provider.text("POST", CREATE_PATH, "<html>gateway</html>")

    result = await adapter.book_shipment(SHIPMENT, partner)

    assert result["error"]["kind"] == "InternalError"


async def test_tracking_maps_statuses_and_history(adapter, provider, partner):
    provider.json(
        "GET",
        TRACK_PATH,
        {
            "ShipmentData": [
                {
                    "Shipment": {
                        "AWB": "1234567890",
                        "Status": {"Status": "In Transit", "StatusType": "UD"},
                        "ExpectedDeliveryDate": "2024-05-04T18:00:00",
                        "Scans": [
                            {
                                "ScanDetail": {
                                    "Scan": "Manifested",
                                    "Instructions": "Shipment manifested",
                                    "ScannedLocation": "Delhi_Okhla",
                                    "StatusDateTime": "2024-05-01 10:00:00",
                                }
                            },
                            {
                                "ScanDetail": {
                                    "Scan": "In Transit",
                                    "Instructions": "Bag received",
                                    "ScannedLocation": "Bengaluru_Hub",
                                    "StatusDateTime": "2024-05-02 08:15:00",
                                }
                            },
                        ],
                    }
                }
            ]
        },
    )

    result = await adapter.track_shipment("1234567890", partner)

    data = result["data"]
    assert data["status"] == "in_transit"
    assert data["providerStatus"] == "In Transit"
    assert [scan["status"] for scan in data["history"]] == ["booked", "in_transit"]
    assert data["history"][0]["timestamp"] == "2024-05-01T10:00:00+05:30"
    assert data["estimatedDelivery"].startswith("2024-05-04T18:00:00")


async def test_return_status_type_means_rto(adapter, provider, partner):
    provider.json(
        "GET",
        TRACK_PATH,
        {"ShipmentData": [{"Shipment": {"Status": {"Status": "In Transit", "StatusType": "RT"}}}]},
    )

    result = await adapter.track_shipment("1234567890", partner)

    assert result["data"]["status"] == "rto"


async def test_unknown_provider_status_is_kept_as_sub_status(adapter, provider, partner):
    provider.json(
        "GET",
        TRACK_PATH,
        {"ShipmentData": [{"Shipment": {"Status": {"Status": "Held At Customs"}}}]},
    )

    result = await adapter.track_shipment("1234567890", partner)

    assert result["data"]["status"] == "in_transit"
    assert result["data"]["subStatus"] == "Held At Customs"


async def test_tracking_read_is_retried_once(adapter, provider, partner):
    replies = iter(
        [
            httpx.Response(502, text="bad gateway"),
            httpx.Response(
                200,
                json={"ShipmentData": [{"Shipment": {"Status": {"Status": "Delivered"}}}]},
            ),
        ]
    )
    provider.add("GET", TRACK_PATH, lambda request: next(replies))

    result = await adapter.track_shipment("1234567890", partner)

    assert result["data"]["status"] == "delivered"
    assert len(provider.calls(TRACK_PATH)) == 2


async def test_unknown_awb(adapter, provider, partner):
    provider.json("GET", TRACK_PATH, {"ShipmentData": []})

    result = await adapter.track_shipment("000", partner)

    assert result["error"]["kind"] == "ProviderRejected"


async def test_cancel(adapter, provider, partner):
    provider.json("POST", CANCEL_PATH, {"status": True, "remark": "Shipment has been cancelled"})

    result = await adapter.cancel_shipment("1234567890", partner)

    assert result["data"]["cancelled"] is True
    assert result["data"]["message"] == "Shipment has been cancelled"


async def test_cancel_refused(adapter, provider, partner):
    provider.json("POST", CANCEL_PATH, {"status": False, "remark": "Already delivered"})

    result = await adapter.cancel_shipment("1234567890", partner)

    assert result["error"]["kind"] == "ProviderRejected"
    assert result["error"]["message"] == "Already delivered"


def test_clean_text():
    assert clean_text('Flat 3 & 4; "Sunrise"') == "Flat 3 4 Sunrise"
    assert clean_text(None) == ""
