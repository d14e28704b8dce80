import pytest
from fastapi.testclient import TestClient

from database.db import get_db
from main import app
from modules.rate_card.rate_card_repository import SQLRateCardRepository
from modules.shipment import shipment_service
from modules.shipment.courier_orchestrator import CourierOrchestrator
from modules.shipment.shipment_service import ShipmentService
from modules.shipping_partner.partner_registry import PartnerRegistry, SQLPartnerConfigStore
from shipping_partner.base import CourierAdapter

from tests.conftest import make_card, make_partner


class FlatRateAdapter(CourierAdapter):
    code = "flat"

    async def _calculate_rate(self, pkg, delivery, partner_config):
        return {"total": 99, "mode": "Surface"}

    async def _book_shipment(self, shipment_details, partner_config):
        return {"awb": "FL1", "orderId": shipment_details["orderId"]}

    async def _track_shipment(self, tracking_id, partner_config):
        return {"awb": tracking_id, "status": "delivered", "history": []}

    async def _cancel_shipment(self, tracking_id, partner_config):
        return {"awb": tracking_id, "cancelled": True}


@pytest.fixture
def client(db_session, monkeypatch):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    registry = PartnerRegistry(SQLPartnerConfigStore(db_session))
    registry.upsert(make_partner("flat"))
    monkeypatch.setattr(
        shipment_service,
        "_orchestrator",
        CourierOrchestrator(
            registry,
            adapters={"flat": FlatRateAdapter},
            provider_timeout=1,
            comparison_timeout=2,
        ),
    )

    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_status(client):
    response = client.get("/status")
    assert response.status_code == 200
    assert response.json() == {"status": "OK"}


def test_calculate_rates(client, db_session):
    SQLRateCardRepository(db_session).upsert_card(make_card())

    response = client.post(
        "/api/v1/shipping/rates/calculate",
        json={"zone": "Within City", "weight": 1, "paymentType": "prepaid"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] is True
    assert "status_code" not in body
    assert body["data"]["calculations"][0]["total"] == 64.9
    assert body["data"]["requestId"].startswith("RC-")


def test_calculate_rates_without_cards(client):
    response = client.post(
        "/api/v1/shipping/rates/calculate", json={"zone": "Within City", "weight": 1}
    )

    assert response.status_code == 404
    assert response.json()["data"]["kind"] == "NoRatesAvailable"


def test_compare_rates(client):
    response = client.post(
        "/api/v1/shipping/rates/compare",
        json={"pickupPincode": "110001", "deliveryPincode": "560001", "weight": 1},
    )

    assert response.status_code == 200
    cheapest = response.json()["data"]["cheapest"]
    assert cheapest["courier"] == "flat"
    assert cheapest["rateType"] == "API"
    assert cheapest["total"] == 99


def test_book_track_and_cancel(client):
    booked = client.post(
        "/api/v1/shipping/flat/book",
        json={
            "orderId": "ORD-1",
            "weight": 0.5,
            "pickupPincode": "110001",
            "deliveryPincode": "560001",
            "consignee": {"name": "Kiran"},
        },
    )
    assert booked.status_code == 201
    assert booked.json()["data"]["awb"] == "FL1"
    assert booked.json()["data"]["trackingUrl"] == "https://track.example.com/flat/FL1"

    tracked = client.get("/api/v1/shipping/flat/track/FL1")
    assert tracked.status_code == 200
    assert tracked.json()["data"]["status"] == "delivered"

    cancelled = client.post("/api/v1/shipping/flat/cancel/FL1")
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["provider"] == "flat"


def test_booking_an_unknown_courier(client):
    response = client.post(
        "/api/v1/shipping/pigeonpost/book",
        json={
            "orderId": "ORD-2",
            "weight": 0.5,
            "pickupPincode": "110001",
            "deliveryPincode": "560001",
            "consignee": {"name": "Kiran"},
        },
    )

    assert response.status_code == 409
    body = response.json()
    assert body["data"]["kind"] == "ConfigurationError"
    assert body["data"]["alternatives"] == ["flat"]


def test_rate_card_import_and_export(client):
    imported = client.post(
        "/api/v1/rate-cards/import",
        json=[make_card(), make_card(zone="Nowhere")],
    )

    assert imported.status_code == 207
    assert imported.json()["data"]["created"] == 1

    exported = client.get("/api/v1/rate-cards/export")
    assert [row["zone"] for row in exported.json()["data"]] == ["Within City"]


def test_partner_status_update(client):
    response = client.put(
        "/api/v1/shipping-partners/flat/status", json={"apiStatus": "inactive"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["data"]["apiStatus"] == "inactive"
    assert "credentials" not in body["data"]


def test_calculate_rates_with_zone_alias(client, db_session):
    SQLRateCardRepository(db_session).upsert_card(make_card())

    response = client.post(
        "/api/v1/shipping/rates/calculate", json={"zone": "WithinCity", "weight": 1}
    )

    assert response.status_code == 200
    assert response.json()["data"]["zone"] == "Within City"


def test_unexpected_failure_keeps_its_text_in_the_logs(client, monkeypatch):
    def crash(*args, **kwargs):
        raise RuntimeError("connection to db-primary:5432 refused")

    monkeypatch.setattr(ShipmentService, "calculate_shipping_rate", staticmethod(crash))

    response = client.post(
        "/api/v1/shipping/rates/calculate", json={"zone": "Within City", "weight": 1}
    )

    assert response.status_code == 500
    body = response.json()
    assert body["message"] == "An error occurred while calculating shipping rates."
    assert "db-primary" not in response.text
