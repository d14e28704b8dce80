from typing import Iterable, List

from context_manager.context import context_user_data
from logger import logger

# schema
from modules.rate_card.rate_card_schema import (
    EffectiveRateCardModel,
    RateCardModel,
    SellerRateOverrideModel,
)
from modules.rate_card.rate_card_repository import RateCardRepository
from modules.serviceability.zone_classifier import Zone


def card_sort_key(card: RateCardModel) -> tuple:
    return (
        card.courier.lower(),
        Zone(card.zone).value,
        card.mode,
        card.productName.lower(),
        card.rateBand,
        card.id or 0,
    )


def merge_overrides(
    cards: Iterable[RateCardModel],
    overrides: Iterable[SellerRateOverrideModel],
) -> List[EffectiveRateCardModel]:
    """
    Apply a seller's overrides onto the active base cards.

    Only active cards are returned, one per base card, so the effective set
    always covers exactly the lanes the base set covers. Inactive overrides
    and overrides whose base card is missing or inactive are ignored.
    """
    active_cards = [card for card in cards if card.isActive]
    active_ids = {card.id for card in active_cards}

    overrides_by_card = {}
    for override in sorted(overrides, key=lambda o: o.id or 0):
        if not override.isActive:
            continue
        if override.baseRateCardId not in active_ids:
            logger.info(
                extra=context_user_data.get(),
                msg="Ignoring override {} for seller {}: base card {} is not active".format(
                    override.id, override.sellerId, override.baseRateCardId
                ),
            )
            continue
        # later ids win when a card has duplicates
        overrides_by_card[override.baseRateCardId] = override

    effective = []
    for card in sorted(active_cards, key=card_sort_key):
        values = card.model_dump()
        values["baseRateCardId"] = card.id

        override = overrides_by_card.get(card.id)
        if override is not None:
            values.update(override.overridden_fields())
            values["isOverride"] = True
            values["overrideId"] = override.id

        effective.append(EffectiveRateCardModel(**values))

    return effective


def effective_rate_cards(
    seller_id: str, repository: RateCardRepository
) -> List[EffectiveRateCardModel]:
    cards = repository.list_active_cards()
    if not cards:
        return []

    overrides = repository.list_overrides(seller_id) if seller_id else []
    return merge_overrides(cards, overrides)
