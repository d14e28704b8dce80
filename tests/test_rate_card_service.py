import pytest

from modules.rate_card.override_resolver import effective_rate_cards
from modules.rate_card.rate_card_repository import (
    InMemoryRateCardRepository,
    SQLRateCardRepository,
)
from modules.rate_card.rate_card_service import RateCardService
from utils.exception_handler import ValidationError

from tests.conftest import make_card


@pytest.fixture(params=["memory", "sql"])
def store(request, db_session):
    if request.param == "memory":
        return InMemoryRateCardRepository()
    return SQLRateCardRepository(db_session)


def test_bulk_import_reports_bad_rows_and_keeps_good_ones(store):
    response = RateCardService.bulk_import(
        [
            make_card(),
            make_card(zone="Moon Zone"),
            make_card(productName="Delhivery Express", mode="express", baseRate=70),
            make_card(baseRate=-1, productName="Broken"),
        ],
        store,
    )

    assert response.status is True
    assert response.status_code == 207
    result = response.data
    assert result.created == 2
    assert result.updated == 0
    assert [failure.row for failure in result.failed] == [2, 4]
    assert "zone" in result.failed[0].errors
    assert "baseRate" in result.failed[1].errors

    modes = sorted(card.mode for card in store.list_active_cards())
    assert modes == ["Express", "Surface"]


def test_reimport_updates_by_identity(store):
    RateCardService.bulk_import([make_card()], store)

    response = RateCardService.bulk_import([make_card(baseRate=42, zone="within city")], store)

    assert response.status_code == 200
    assert response.data.updated == 1
    cards = store.list_cards()
    assert len(cards) == 1
    assert cards[0].baseRate == 42


def test_import_needs_a_list(store):
    response = RateCardService.bulk_import({"courier": "Delhivery"}, store)

    assert response.status is False
    assert response.status_code == 400
    assert response.data["kind"] == "ValidationError"


def test_export_is_sorted_and_omits_storage_fields(store):
    RateCardService.bulk_import(
        [
            make_card(courier="Xpressbees", productName="XB Surface"),
            make_card(zone="Metro to Metro"),
            make_card(),
        ],
        store,
    )

    rows = RateCardService.export_cards(store).data

    assert [(row["courier"], row["zone"]) for row in rows] == [
        ("Delhivery", "Metro to Metro"),
        ("Delhivery", "Within City"),
        ("Xpressbees", "Within City"),
    ]
    assert "uuid" not in rows[0]
    assert rows[0]["id"] is not None


def test_export_can_include_inactive_cards(store):
    RateCardService.bulk_import([make_card(), make_card(productName="Old", isActive=False)], store)

    assert len(RateCardService.export_cards(store).data) == 1
    assert len(RateCardService.export_cards(store, include_inactive=True).data) == 2


def test_statistics(store):
    RateCardService.bulk_import(
        [
            make_card(),
            make_card(zone="Within State"),
            make_card(courier="Bluedart", productName="BD Air", mode="Air"),
            make_card(productName="Old", isActive=False),
        ],
        store,
    )

    stats = RateCardService.statistics(store).data

    assert stats["total"] == 4
    assert stats["active"] == 3
    assert stats["inactive"] == 1
    assert stats["byCourier"] == {"Bluedart": 1, "Delhivery": 2}
    assert stats["byZone"] == {"Within City": 2, "Within State": 1}
    assert stats["byMode"] == {"Air": 1, "Surface": 2}
    assert stats["couriers"] == ["Bluedart", "Delhivery"]


def test_save_override_and_resolve(store):
    card, _ = store.upsert_card(make_card())

    response = RateCardService.save_override(
        {"sellerId": "S9", "baseRateCardId": card.id, "codPercent": 1}, store
    )
    assert response.status is True

    # saving again for the same card updates the one override
    RateCardService.save_override(
        {"sellerId": "S9", "baseRateCardId": card.id, "codPercent": 1.5}, store
    )

    overrides = store.list_overrides("S9")
    assert len(overrides) == 1
    assert overrides[0].codPercent == 1.5

    effective = effective_rate_cards("S9", store)
    assert effective[0].codPercent == 1.5
    assert effective[0].baseRate == card.baseRate


def test_invalid_override(store):
    card, _ = store.upsert_card(make_card())

    response = RateCardService.save_override(
        {"sellerId": "S9", "baseRateCardId": card.id, "codPercent": 140}, store
    )

    assert response.status_code == 400
    assert "codPercent" in response.data["details"]


def test_override_for_missing_card(store):
    response = RateCardService.save_override({"sellerId": "S9", "baseRateCardId": 999}, store)

    assert response.status is False
    assert response.data["kind"] == "ValidationError"


def test_remove_card_deactivates_by_default(store):
    card, _ = store.upsert_card(make_card())

    response = RateCardService.remove_card(card.id, store)

    assert response.data.isActive is False
    assert store.list_active_cards() == []
    assert len(store.list_cards()) == 1


def test_hard_delete_drops_card_and_overrides(store):
    card, _ = store.upsert_card(make_card())
    store.upsert_override({"sellerId": "S1", "baseRateCardId": card.id, "baseRate": 1})

    response = RateCardService.remove_card(card.id, store, privileged=True)

    assert response.status is True
    assert store.list_cards() == []
    assert store.list_overrides("S1") == []


def test_hard_delete_needs_privilege(store):
    card, _ = store.upsert_card(make_card())

    with pytest.raises(ValidationError):
        store.delete_card(card.id)
    assert store.get_card(card.id) is not None


def test_remove_missing_card(store):
    response = RateCardService.remove_card(404, store)
    assert response.status is False
    assert response.data["details"] == {"cardId": 404}


def test_active_couriers(store):
    RateCardService.bulk_import(
        [make_card(), make_card(courier="Ekart", productName="Ekart Surface")], store
    )
    assert RateCardService.active_couriers(store) == ["Delhivery", "Ekart"]
