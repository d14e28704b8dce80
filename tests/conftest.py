import json

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.db import init_models
from modules.rate_card.rate_card_repository import InMemoryRateCardRepository
from modules.shipping_partner.partner_registry import (
    InMemoryPartnerConfigStore,
    PartnerRegistry,
)
from modules.shipment.courier_orchestrator import CourierOrchestrator


@pytest.fixture
def anyio_backend():
    # asyncio only, no trio needed
    return "asyncio"


def make_card(**overrides):
    card = {
        "courier": "Delhivery",
        "productName": "Delhivery Surface",
        "mode": "Surface",
        "zone": "Within City",
        "rateBand": "RBX1",
        "baseRate": 40,
        "addlRate": 15,
        "codAmount": 20,
        "codPercent": 2,
        "rtoCharges": 35,
        "minimumBillableWeight": 0.5,
        "isActive": True,
    }
    card.update(overrides)
    return card


def make_partner(code, **overrides):
    partner = {
        "courierCode": code,
        "name": code.title(),
        "credentials": {},
        "rateDefaults": {"baseRate": 50, "weightRate": 20},
        "weightLimits": {"min": 0, "max": 50},
        "dimensionLimits": {"maxLength": 120, "maxWidth": 120, "maxHeight": 120},
        "apiStatus": "active",
        "trackingUrl": f"https://track.example.com/{code}/{{awb}}",
    }
    partner.update(overrides)
    return partner


PARTNER_CREDENTIALS = {
    "delhivery": {"token": "dl-token", "pickupLocation": "WH-1"},
    "bluedart": {
        "client_id": "bd-client",
        "client_secret": "bd-secret",
        "licence_key": "bd-licence",
        "login_id": "bd-login",
        "customer_code": "BD001",
        "area": "BOM",
    },
    "dtdc": {
        "username": "dtdc-user",
        "password": "dtdc-pass",
        "api_key": "dtdc-key",
        "api_token": "dtdc-track",
        "customer_code": "DT001",
    },
    "ecomexpress": {"username": "ecom-user", "password": "ecom-pass"},
    "ekart": {
        "client_id": "EKC",
        "username": "ekart-user",
        "password": "ekart-pass",
        "pickupLocation": "WH-1",
    },
    "xpressbees": {"email": "ops@example.com", "password": "xb-pass"},
}


def partner_config(code, **overrides):
    from modules.shipping_partner.shipping_partner_schema import PartnerConfigModel

    values = make_partner(code, credentials=PARTNER_CREDENTIALS.get(code, {}))
    values.update(overrides)
    return PartnerConfigModel(id=1, **values)


class MockProvider:
    """
    Routes requests by (method, path) to canned handlers and records every
    request it saw.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, handler):
        self.routes[(method.upper(), path)] = handler
        return self

    def json(self, method, path, payload, status_code=200):
        return self.add(
            method, path, lambda request: httpx.Response(status_code, json=payload)
        )

    def text(self, method, path, body, status_code=200):
        return self.add(
            method, path, lambda request: httpx.Response(status_code, text=body)
        )

    def calls(self, path):
        return [request for request in self.requests if request.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": f"no route {request.url.path}"})
        return handler(request)

    @property
    def transport(self):
        return httpx.MockTransport(self)


def request_json(request: httpx.Request):
    return json.loads(request.content.decode("utf-8"))


@pytest.fixture
def mock_provider():
    return MockProvider()


@pytest.fixture
def base_cards():
    return [
        make_card(),
        make_card(productName="Delhivery Express", mode="Express", baseRate=70, addlRate=30),
        make_card(
            courier="Bluedart",
            productName="Bluedart Surface",
            baseRate=45,
            addlRate=12,
            codAmount=30,
            codPercent=1.5,
        ),
        make_card(zone="Within State", baseRate=50, addlRate=18),
        make_card(zone="Metro to Metro", baseRate=60, addlRate=25),
    ]


@pytest.fixture
def repository(base_cards):
    return InMemoryRateCardRepository(cards=base_cards)


@pytest.fixture
def partner_store():
    return InMemoryPartnerConfigStore(
        [
            make_partner(code, credentials=PARTNER_CREDENTIALS[code])
            for code in PARTNER_CREDENTIALS
        ]
    )


@pytest.fixture
def registry(partner_store):
    return PartnerRegistry(partner_store)


@pytest.fixture
def orchestrator(registry, mock_provider):
    return CourierOrchestrator(
        registry,
        transport=mock_provider.transport,
        provider_timeout=2,
        comparison_timeout=5,
    )


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_models(engine)
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
