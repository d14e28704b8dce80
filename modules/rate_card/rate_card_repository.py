"""
Storage access for base rate cards and seller overrides.

Two implementations share one interface: the SQLAlchemy one used by the
service, and an in-memory one used for tests and bulk-import dry runs.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.orm import Session

from context_manager.context import context_user_data, get_db_session
from database.db import time_now
from logger import logger

# models
from models import Rate_Card, Seller_Rate_Override

# schema
from modules.rate_card.rate_card_schema import (
    RateCardInsertModel,
    RateCardModel,
    SellerRateOverrideInsertModel,
    SellerRateOverrideModel,
    OVERRIDABLE_FIELDS,
)
from utils.exception_handler import ValidationError


def _coerce(model_cls, value):
    if isinstance(value, BaseModel):
        value = value.model_dump()
    return model_cls.model_validate(value)


class RateCardRepository(ABC):
    @abstractmethod
    def list_active_cards(self) -> List[RateCardModel]: ...

    @abstractmethod
    def list_cards(self, include_inactive: bool = True) -> List[RateCardModel]: ...

    @abstractmethod
    def list_overrides(self, seller_id: str) -> List[SellerRateOverrideModel]: ...

    @abstractmethod
    def get_card(self, card_id: int) -> Optional[RateCardModel]: ...

    @abstractmethod
    def upsert_card(self, card: RateCardInsertModel) -> Tuple[RateCardModel, bool]:
        """Create or update by identity. Returns (card, created)."""

    @abstractmethod
    def deactivate_card(self, card_id: int) -> RateCardModel: ...

    @abstractmethod
    def delete_card(self, card_id: int, privileged: bool = False) -> None: ...

    @abstractmethod
    def upsert_override(
        self, override: SellerRateOverrideInsertModel
    ) -> SellerRateOverrideModel: ...

    @staticmethod
    def _require_privilege(card_id: int, privileged: bool):
        if not privileged:
            raise ValidationError(
                "Hard delete requires a privileged actor, deactivate the card instead",
                details={"cardId": card_id},
            )

    @staticmethod
    def _not_found(card_id: int) -> ValidationError:
        return ValidationError("Rate card not found", details={"cardId": card_id})


class InMemoryRateCardRepository(RateCardRepository):
    def __init__(self, cards=None, overrides=None):
        self._cards: Dict[int, RateCardModel] = {}
        self._overrides: Dict[int, SellerRateOverrideModel] = {}
        self._next_card_id = 1
        self._next_override_id = 1

        for card in cards or []:
            self.upsert_card(card)
        for override in overrides or []:
            self.upsert_override(override)

    def list_active_cards(self) -> List[RateCardModel]:
        return [card for card in self._cards.values() if card.isActive]

    def list_cards(self, include_inactive: bool = True) -> List[RateCardModel]:
        if include_inactive:
            return list(self._cards.values())
        return self.list_active_cards()

    def list_overrides(self, seller_id: str) -> List[SellerRateOverrideModel]:
        return [o for o in self._overrides.values() if o.sellerId == seller_id]

    def get_card(self, card_id: int) -> Optional[RateCardModel]:
        return self._cards.get(card_id)

    def upsert_card(self, card: RateCardInsertModel) -> Tuple[RateCardModel, bool]:
        card = _coerce(RateCardInsertModel, card)
        values = card.model_dump()

        for existing in self._cards.values():
            if existing.identity() == card.identity():
                updated = existing.model_copy(
                    update={**values, "updated_at": time_now()}
                )
                self._cards[existing.id] = updated
                return updated, False

        now = time_now()
        created = RateCardModel(
            **values, id=self._next_card_id, created_at=now, updated_at=now
        )
        self._cards[created.id] = created
        self._next_card_id += 1
        return created, True

    def deactivate_card(self, card_id: int) -> RateCardModel:
        card = self._cards.get(card_id)
        if card is None:
            raise self._not_found(card_id)
        card = card.model_copy(update={"isActive": False, "updated_at": time_now()})
        self._cards[card_id] = card
        return card

    def delete_card(self, card_id: int, privileged: bool = False) -> None:
        self._require_privilege(card_id, privileged)
        if self._cards.pop(card_id, None) is None:
            raise self._not_found(card_id)
        for override_id in [
            o.id for o in self._overrides.values() if o.baseRateCardId == card_id
        ]:
            del self._overrides[override_id]

    def upsert_override(
        self, override: SellerRateOverrideInsertModel
    ) -> SellerRateOverrideModel:
        override = _coerce(SellerRateOverrideInsertModel, override)
        if override.baseRateCardId not in self._cards:
            raise self._not_found(override.baseRateCardId)

        values = override.model_dump()
        values["lastUpdated"] = time_now()

        for existing in self._overrides.values():
            if (
                existing.sellerId == override.sellerId
                and existing.baseRateCardId == override.baseRateCardId
            ):
                updated = existing.model_copy(update=values)
                self._overrides[existing.id] = updated
                return updated

        created = SellerRateOverrideModel(**values, id=self._next_override_id)
        self._overrides[created.id] = created
        self._next_override_id += 1
        return created


class SQLRateCardRepository(RateCardRepository):
    def __init__(self, db: Optional[Session] = None):
        self.db: Session = db if db is not None else get_db_session()
        if self.db is None:
            raise RuntimeError("SQLRateCardRepository needs a database session")

    def _active_query(self):
        return self.db.query(Rate_Card).filter(
            Rate_Card.isActive == True,
            Rate_Card.is_deleted == False,
        )

    def list_active_cards(self) -> List[RateCardModel]:
        return [card.to_model() for card in self._active_query().all()]

    def list_cards(self, include_inactive: bool = True) -> List[RateCardModel]:
        if not include_inactive:
            return self.list_active_cards()
        cards = self.db.query(Rate_Card).filter(Rate_Card.is_deleted == False).all()
        return [card.to_model() for card in cards]

    def list_overrides(self, seller_id: str) -> List[SellerRateOverrideModel]:
        overrides = (
            self.db.query(Seller_Rate_Override)
            .filter(
                Seller_Rate_Override.sellerId == seller_id,
                Seller_Rate_Override.is_deleted == False,
            )
            .all()
        )
        return [override.to_model() for override in overrides]

    def _get_entity(self, card_id: int) -> Optional[Rate_Card]:
        return (
            self.db.query(Rate_Card)
            .filter(Rate_Card.id == card_id, Rate_Card.is_deleted == False)
            .first()
        )

    def get_card(self, card_id: int) -> Optional[RateCardModel]:
        card = self._get_entity(card_id)
        return card.to_model() if card else None

    def upsert_card(self, card: RateCardInsertModel) -> Tuple[RateCardModel, bool]:
        card = _coerce(RateCardInsertModel, card)
        courier, product_name, mode, zone, rate_band = card.identity()

        existing = (
            self.db.query(Rate_Card)
            .filter(
                Rate_Card.courier == courier,
                Rate_Card.productName == product_name,
                Rate_Card.mode == mode,
                Rate_Card.zone == zone,
                Rate_Card.rateBand == rate_band,
                Rate_Card.is_deleted == False,
            )
            .first()
        )

        if existing is None:
            entity = Rate_Card.create_db_entity(card)
            self.db.add(entity)
            self.db.flush()
            return entity.to_model(), True

        for key, value in card.model_dump(mode="json").items():
            setattr(existing, key, value)
        self.db.flush()
        return existing.to_model(), False

    def deactivate_card(self, card_id: int) -> RateCardModel:
        card = self._get_entity(card_id)
        if card is None:
            raise self._not_found(card_id)

        card.isActive = False
        self.db.flush()

        logger.info(
            extra=context_user_data.get(),
            msg=f"Rate card {card_id} deactivated",
        )
        return card.to_model()

    def delete_card(self, card_id: int, privileged: bool = False) -> None:
        self._require_privilege(card_id, privileged)

        card = self._get_entity(card_id)
        if card is None:
            raise self._not_found(card_id)

        self.db.query(Seller_Rate_Override).filter(
            Seller_Rate_Override.baseRateCardId == card_id
        ).delete(synchronize_session=False)
        self.db.delete(card)
        self.db.flush()

        logger.warning(
            extra=context_user_data.get(),
            msg=f"Rate card {card_id} permanently deleted",
        )

    def upsert_override(
        self, override: SellerRateOverrideInsertModel
    ) -> SellerRateOverrideModel:
        override = _coerce(SellerRateOverrideInsertModel, override)
        if self._get_entity(override.baseRateCardId) is None:
            raise self._not_found(override.baseRateCardId)

        existing = (
            self.db.query(Seller_Rate_Override)
            .filter(
                Seller_Rate_Override.sellerId == override.sellerId,
                Seller_Rate_Override.baseRateCardId == override.baseRateCardId,
            )
            .first()
        )

        if existing is None:
            existing = Seller_Rate_Override(
                sellerId=override.sellerId,
                baseRateCardId=override.baseRateCardId,
            )
            self.db.add(existing)

        for field in OVERRIDABLE_FIELDS:
            setattr(existing, field, getattr(override, field))
        existing.isActive = override.isActive
        existing.is_deleted = False
        existing.lastUpdated = time_now()

        self.db.flush()
        return existing.to_model()
