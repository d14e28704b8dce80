import asyncio

import httpx
import pytest

from modules.rate_card.rate_card_repository import InMemoryRateCardRepository
from modules.shipment.courier_orchestrator import (
    CourierOrchestrator,
    BOOK_SHIPMENT,
    CALCULATE_RATE,
    TRACK_SHIPMENT,
)
from modules.shipping_partner.partner_registry import (
    InMemoryPartnerConfigStore,
    PartnerRegistry,
)
from shipping_partner.base import CourierAdapter

from tests.conftest import MockProvider, make_card, make_partner, partner_config


pytestmark = pytest.mark.anyio


class StubAdapter(CourierAdapter):
    """Canned answers per courier, no network."""

    code = "stub"
    answers = {}
    calls = []

    async def _calculate_rate(self, pkg, delivery, partner_config):
        StubAdapter.calls.append((partner_config.courierCode, "rate"))
        answer = self.answers[partner_config.courierCode]
        if isinstance(answer, BaseException):
            raise answer
        if answer == "hang":
            await asyncio.sleep(30)
        return answer

    async def _book_shipment(self, shipment_details, partner_config):
        StubAdapter.calls.append((partner_config.courierCode, "book"))
        answer = self.answers[partner_config.courierCode]
        if isinstance(answer, BaseException):
            raise answer
        return answer

    async def _track_shipment(self, tracking_id, partner_config):
        return {"awb": tracking_id, "status": "in_transit", "history": []}

    async def _cancel_shipment(self, tracking_id, partner_config):
        return {"awb": tracking_id, "cancelled": True, "message": "Shipment cancelled"}


@pytest.fixture
def stub_orchestrator():
    StubAdapter.answers = {}
    StubAdapter.calls = []
    store = InMemoryPartnerConfigStore(
        [
            make_partner("alpha"),
            make_partner("beta", rateDefaults={"baseRate": 30, "weightRate": 10}),
            make_partner("gamma", rateDefaults={"baseRate": 45, "weightRate": 15}),
            make_partner("dormant", apiStatus="inactive"),
        ]
    )
    adapters = {code: StubAdapter for code in ("alpha", "beta", "gamma", "dormant")}
    return CourierOrchestrator(
        PartnerRegistry(store),
        adapters=adapters,
        provider_timeout=0.2,
        comparison_timeout=2,
    )


def _priced(total, mode="Surface"):
    return {"total": total, "mode": mode, "currency": "INR", "estimatedDelivery": None}


COMPARE_REQUEST = {
    "pickupPincode": "110001",
    "deliveryPincode": "560001",
    "weight": 1,
}


async def test_one_courier_timing_out_does_not_fail_the_comparison(stub_orchestrator):
    StubAdapter.answers = {"alpha": _priced(80), "beta": _priced(70), "gamma": "hang"}

    result = await stub_orchestrator.compare_rates(
        COMPARE_REQUEST, couriers=["alpha", "beta", "gamma"]
    )

    by_courier = {entry.courier: entry for entry in result.rates}
    assert by_courier["alpha"].success and by_courier["alpha"].rateType == "API"
    assert by_courier["beta"].success and by_courier["beta"].total == 70

    gamma = by_courier["gamma"]
    assert gamma.success is False
    assert gamma.error["kind"] == "ProviderUnavailable"
    assert gamma.rateType == "FALLBACK"
    # 45 + 15 x 1.0 kg
    assert gamma.total == 60

    assert result.cheapest.courier == "beta"
    assert result.failedCouriers == ["gamma"]
    assert result.partial is True


async def test_unpriced_serviceable_courier_gets_a_fallback_estimate(stub_orchestrator):
    StubAdapter.answers = {"alpha": _priced(None), "beta": _priced(90)}

    result = await stub_orchestrator.compare_rates(
        {**COMPARE_REQUEST, "weight": 1.2}, couriers=["alpha", "beta"]
    )

    alpha = next(entry for entry in result.rates if entry.courier == "alpha")
    assert alpha.success is True
    assert alpha.rateType == "FALLBACK"
    # 50 + 20 x 1.5 kg
    assert alpha.total == 80
    assert result.cheapest.courier == "alpha"
    assert result.partial is False


async def test_rate_cards_take_precedence_over_the_api(stub_orchestrator):
    StubAdapter.answers = {"alpha": _priced(500)}
    cards = InMemoryRateCardRepository(
        cards=[make_card(courier="Alpha", productName="Alpha Surface", zone="Metro to Metro")]
    ).list_active_cards()

    result = await stub_orchestrator.compare_rates(
        COMPARE_REQUEST, couriers=["alpha"], cards=cards
    )

    entry = result.rates[0]
    assert entry.rateType == "RATE_CARD"
    assert entry.total == 64.9
    assert ("alpha", "rate") not in StubAdapter.calls


async def test_rejections_are_reported_without_a_fallback(stub_orchestrator):
    from utils.exception_handler import ProviderRejected

    StubAdapter.answers = {
        "alpha": ProviderRejected("Pincode not serviceable"),
        "beta": _priced(70),
    }

    result = await stub_orchestrator.compare_rates(COMPARE_REQUEST, couriers=["alpha", "beta"])

    alpha = next(entry for entry in result.rates if entry.courier == "alpha")
    assert alpha.error["kind"] == "ProviderRejected"
    assert alpha.rateType is None
    assert alpha.total is None


async def test_unknown_and_inactive_couriers_are_configuration_errors(stub_orchestrator):
    StubAdapter.answers = {"alpha": _priced(80)}

    result = await stub_orchestrator.compare_rates(
        COMPARE_REQUEST, couriers=["alpha", "dormant", "nosuch"]
    )

    kinds = {entry.courier: (entry.error or {}).get("kind") for entry in result.rates}
    assert kinds["dormant"] == "ConfigurationError"
    assert kinds["nosuch"] == "ConfigurationError"
    assert ("dormant", "rate") not in StubAdapter.calls


async def test_default_courier_set_is_every_active_partner(stub_orchestrator):
    StubAdapter.answers = {"alpha": _priced(80), "beta": _priced(70), "gamma": _priced(75)}

    result = await stub_orchestrator.compare_rates(COMPARE_REQUEST)

    assert sorted(entry.courier for entry in result.rates) == ["alpha", "beta", "gamma"]
    assert [entry.courier for entry in result.rates] == ["beta", "gamma", "alpha"]


async def test_overall_deadline_keeps_finished_quotes(stub_orchestrator):
    StubAdapter.answers = {"alpha": _priced(80), "beta": "hang"}
    stub_orchestrator.provider_timeout = 10
    stub_orchestrator.comparison_timeout = 0.2

    result = await stub_orchestrator.compare_rates(COMPARE_REQUEST, couriers=["alpha", "beta"])

    beta = next(entry for entry in result.rates if entry.courier == "beta")
    assert beta.error["kind"] == "ProviderUnavailable"
    assert result.cheapest.courier == "alpha"
    assert result.partial is True


async def test_cancelled_comparison_returns_completed_entries(stub_orchestrator):
    StubAdapter.answers = {"alpha": _priced(80), "beta": "hang"}
    stub_orchestrator.provider_timeout = 10
    stub_orchestrator.comparison_timeout = 10

    task = asyncio.ensure_future(
        stub_orchestrator.compare_rates(COMPARE_REQUEST, couriers=["alpha", "beta"])
    )
    await asyncio.sleep(0.1)
    task.cancel()
    result = await task

    assert result.partial is True
    assert any(entry.courier == "alpha" and entry.success for entry in result.rates)


async def test_comparison_needs_both_pincodes(stub_orchestrator):
    from utils.exception_handler import ValidationError

    with pytest.raises(ValidationError):
        await stub_orchestrator.compare_rates({"zone": "Within City", "weight": 1})


async def test_inactive_courier_booking_makes_no_network_call(registry):
    provider = MockProvider()
    registry.set_api_status("delhivery", "inactive")
    orchestrator = CourierOrchestrator(registry, transport=provider.transport)

    result = await orchestrator.book("Delhivery", {"orderId": "ORD-1", "weight": 1})

    assert result["success"] is False
    assert result["error"]["kind"] == "ConfigurationError"
    assert provider.requests == []
    assert "delhivery" not in result["alternatives"]
    assert result["alternatives"]


async def test_weight_limits_are_enforced_before_the_call(stub_orchestrator):
    StubAdapter.answers = {"alpha": _priced(80)}

    result = await stub_orchestrator.dispatch(
        "alpha",
        CALCULATE_RATE,
        {"pkg": {"weight": 75}, "delivery": {"pickupPincode": "110001", "deliveryPincode": "560001"}},
    )

    assert result["error"]["kind"] == "ValidationError"
    assert StubAdapter.calls == []


async def test_dimension_limits_are_enforced(stub_orchestrator):
    result = await stub_orchestrator.dispatch(
        "alpha",
        BOOK_SHIPMENT,
        {"shipmentDetails": {"weight": 1, "dimensions": {"length": 300, "width": 10, "height": 10}}},
    )
    assert result["error"]["kind"] == "ValidationError"
    assert "length" in result["error"]["details"]


async def test_unknown_operation(stub_orchestrator):
    result = await stub_orchestrator.dispatch("alpha", "teleport", {})
    assert result["success"] is False
    assert result["error"]["kind"] == "ValidationError"


async def test_track_requires_a_tracking_id(stub_orchestrator):
    result = await stub_orchestrator.dispatch("alpha", TRACK_SHIPMENT, {})
    assert result["error"]["kind"] == "ValidationError"


async def test_successful_booking_carries_tracking_url(stub_orchestrator):
    StubAdapter.answers = {"alpha": {"awb": "AWB123", "orderId": "ORD-1"}}

    result = await stub_orchestrator.book("alpha", {"orderId": "ORD-1", "weight": 1})

    assert result["success"] is True
    assert result["data"]["trackingUrl"] == "https://track.example.com/alpha/AWB123"
    assert result["data"]["bookingType"] == "API"


async def test_failed_booking_is_not_retried(stub_orchestrator):
    from utils.exception_handler import ProviderUnavailable

    StubAdapter.answers = {"alpha": ProviderUnavailable("gateway down")}

    result = await stub_orchestrator.book("alpha", {"orderId": "ORD-1", "weight": 1})

    assert result["error"]["kind"] == "ProviderUnavailable"
    assert StubAdapter.calls.count(("alpha", "book")) == 1
    assert result["alternatives"] == ["beta", "gamma"]


async def test_fallback_estimate_is_deterministic():
    partner = partner_config("delhivery", rateDefaults={"baseRate": 42.5, "weightRate": 17.25})
    estimates = {CourierOrchestrator.fallback_estimate(partner, 1.5) for _ in range(3)}
    assert estimates == {68.38}


async def test_provider_outage_on_rate_degrades_to_fallback(orchestrator, mock_provider):
    mock_provider.add(
        "GET",
        "/api/kinko/v1/invoice/charges/.json",
        lambda request: httpx.Response(503, json={"message": "maintenance"}),
    )

    result = await orchestrator.dispatch(
        "delhivery",
        CALCULATE_RATE,
        {
            "pkg": {"weight": 0.7, "paymentType": "prepaid"},
            "delivery": {"pickupPincode": "110001", "deliveryPincode": "560001"},
        },
    )

    assert result["success"] is False
    assert result["error"]["kind"] == "ProviderUnavailable"
    assert result["fallback"]["rateType"] == "FALLBACK"
    # 50 + 20 x 1.0 kg
    assert result["fallback"]["total"] == 70
    # reads retry once
    assert len(mock_provider.calls("/api/kinko/v1/invoice/charges/.json")) == 2


async def test_every_courier_down_still_yields_an_estimate(stub_orchestrator):
    StubAdapter.answers = {"alpha": "hang", "beta": "hang", "gamma": "hang"}

    result = await stub_orchestrator.compare_rates(
        COMPARE_REQUEST, couriers=["alpha", "beta", "gamma"]
    )

    assert sorted(result.failedCouriers) == ["alpha", "beta", "gamma"]
    assert {entry.rateType for entry in result.rates} == {"FALLBACK"}
    # beta: 30 + 10 x 1.0 kg
    assert result.cheapest.courier == "beta"
    assert result.cheapest.rateType == "FALLBACK"
    assert result.cheapest.total == 40
    assert result.partial is True


class SlowFirstAttemptAdapter(CourierAdapter):
    code = "slow"
    base_url = "https://rates.example.com"

    async def _calculate_rate(self, pkg, delivery, partner_config):
        response = await self._request("GET", "/quote", partner_config, idempotent=True)
        return {"total": response.json()["total"], "mode": "Surface"}

    async def _book_shipment(self, shipment_details, partner_config):
        raise NotImplementedError

    async def _track_shipment(self, tracking_id, partner_config):
        raise NotImplementedError

    async def _cancel_shipment(self, tracking_id, partner_config):
        raise NotImplementedError


async def test_rate_retry_fits_inside_the_comparison_deadline():
    attempts = []

    async def handler(request):
        attempts.append(request)
        if len(attempts) == 1:
            await asyncio.sleep(0.15)
            raise httpx.ReadTimeout("slow upstream", request=request)
        await asyncio.sleep(0.1)
        return httpx.Response(200, json={"total": 55})

    orchestrator = CourierOrchestrator(
        PartnerRegistry(InMemoryPartnerConfigStore([make_partner("alpha")])),
        transport=httpx.MockTransport(handler),
        adapters={"alpha": SlowFirstAttemptAdapter},
        provider_timeout=0.2,
        comparison_timeout=2,
    )

    result = await orchestrator.compare_rates(COMPARE_REQUEST, couriers=["alpha"])

    assert len(attempts) == 2
    assert result.cheapest.rateType == "API"
    assert result.cheapest.total == 55
    assert result.partial is False
