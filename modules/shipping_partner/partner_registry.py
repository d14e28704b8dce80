"""
Courier partner configuration, cached.

PartnerRegistry is the only shared mutable state of the courier layer: a TTL
cache of PartnerConfig per courier code and one TokenHolder per courier.
Loads are single-flight per courier, invalidation is per courier.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Optional

from cachetools import TTLCache
from sqlalchemy.orm import Session

import config
from context_manager.context import context_user_data, get_db_session
from logger import logger

# models
from models import Shipping_Partner

# schema
from modules.shipping_partner.shipping_partner_schema import (
    PartnerConfigInsertModel,
    PartnerConfigModel,
)

# data
from data.courier_service_mapping import courier_service_mapping, courier_code_aliases

# utils
from utils.credential_encryption import encrypt_credentials
from utils.exception_handler import ValidationError
from shipping_partner.base import TokenHolder


def normalize_courier_code(courier_code) -> str:
    if not isinstance(courier_code, str) or not courier_code.strip():
        raise ValidationError(
            "Courier code is required", details={"courier": courier_code}
        )
    key = " ".join(courier_code.strip().lower().split())
    return courier_code_aliases.get(key, key)


def _not_found(courier_code: str) -> ValidationError:
    return ValidationError(
        "Courier partner not found", details={"courier": courier_code}
    )


class PartnerConfigStore(ABC):
    @abstractmethod
    def get(self, courier_code: str) -> Optional[PartnerConfigModel]: ...

    @abstractmethod
    def list_configs(self) -> List[PartnerConfigModel]: ...

    @abstractmethod
    def upsert(self, partner: PartnerConfigInsertModel) -> PartnerConfigModel: ...

    @abstractmethod
    def set_api_status(self, courier_code: str, api_status: str) -> PartnerConfigModel: ...

    @abstractmethod
    def rotate_credentials(
        self, courier_code: str, credentials: dict
    ) -> PartnerConfigModel: ...


class InMemoryPartnerConfigStore(PartnerConfigStore):
    def __init__(self, partners: Iterable = ()):
        self._partners: Dict[str, PartnerConfigModel] = {}
        self._next_id = 1
        self.loads = 0
        for partner in partners:
            self.upsert(partner)

    def get(self, courier_code: str) -> Optional[PartnerConfigModel]:
        self.loads += 1
        return self._partners.get(courier_code)

    def list_configs(self) -> List[PartnerConfigModel]:
        return list(self._partners.values())

    def upsert(self, partner) -> PartnerConfigModel:
        if not isinstance(partner, PartnerConfigInsertModel):
            partner = PartnerConfigInsertModel.model_validate(partner)
        code = normalize_courier_code(partner.courierCode)
        values = partner.model_dump()
        values["courierCode"] = code

        existing = self._partners.get(code)
        if existing is not None:
            stored = existing.model_copy(update=values)
        else:
            stored = PartnerConfigModel(**values, id=self._next_id)
            self._next_id += 1
        self._partners[code] = stored
        return stored

    def set_api_status(self, courier_code: str, api_status: str) -> PartnerConfigModel:
        partner = self._partners.get(courier_code)
        if partner is None:
            raise _not_found(courier_code)
        updated = PartnerConfigModel.model_validate(
            {**partner.model_dump(), "apiStatus": api_status}
        )
        self._partners[courier_code] = updated
        return updated

    def rotate_credentials(self, courier_code: str, credentials: dict) -> PartnerConfigModel:
        partner = self._partners.get(courier_code)
        if partner is None:
            raise _not_found(courier_code)
        updated = partner.model_copy(update={"credentials": dict(credentials)})
        self._partners[courier_code] = updated
        return updated


class SQLPartnerConfigStore(PartnerConfigStore):
    # the registry outlives requests, so without a pinned session every call
    # uses the session of the current request
    def __init__(self, db: Optional[Session] = None):
        self._db = db

    @property
    def db(self) -> Session:
        session = self._db if self._db is not None else get_db_session()
        if session is None:
            raise RuntimeError("SQLPartnerConfigStore needs a database session")
        return session

    def _get_entity(self, courier_code: str) -> Optional[Shipping_Partner]:
        return (
            self.db.query(Shipping_Partner)
            .filter(
                Shipping_Partner.courierCode == courier_code,
                Shipping_Partner.is_deleted == False,
            )
            .first()
        )

    def get(self, courier_code: str) -> Optional[PartnerConfigModel]:
        partner = self._get_entity(courier_code)
        return partner.to_model() if partner else None

    def list_configs(self) -> List[PartnerConfigModel]:
        partners = (
            self.db.query(Shipping_Partner)
            .filter(Shipping_Partner.is_deleted == False)
            .all()
        )
        return [partner.to_model() for partner in partners]

    def upsert(self, partner) -> PartnerConfigModel:
        if not isinstance(partner, PartnerConfigInsertModel):
            partner = PartnerConfigInsertModel.model_validate(partner)
        code = normalize_courier_code(partner.courierCode)
        partner = partner.model_copy(update={"courierCode": code})

        existing = self._get_entity(code)
        if existing is None:
            existing = Shipping_Partner.create_db_entity(partner)
            self.db.add(existing)
        else:
            values = partner.model_dump(mode="json")
            values["credentials"] = encrypt_credentials(values.get("credentials") or {})
            for key, value in values.items():
                setattr(existing, key, value)

        self.db.flush()
        return existing.to_model()

    def set_api_status(self, courier_code: str, api_status: str) -> PartnerConfigModel:
        partner = self._get_entity(courier_code)
        if partner is None:
            raise _not_found(courier_code)

        # validate through the schema before touching the row
        partner.apiStatus = PartnerConfigInsertModel(
            courierCode=courier_code, name=partner.name, apiStatus=api_status
        ).apiStatus
        self.db.flush()
        return partner.to_model()

    def rotate_credentials(self, courier_code: str, credentials: dict) -> PartnerConfigModel:
        partner = self._get_entity(courier_code)
        if partner is None:
            raise _not_found(courier_code)

        partner.credentials = encrypt_credentials(credentials)
        self.db.flush()
        return partner.to_model()


class PartnerRegistry:
    def __init__(
        self,
        store: PartnerConfigStore,
        ttl: float = None,
        maxsize: int = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self._cache: TTLCache = TTLCache(
            maxsize=maxsize or config.PARTNER_CACHE_SIZE,
            ttl=config.PARTNER_CACHE_TTL if ttl is None else ttl,
            timer=timer,
        )
        self._locks: Dict[str, asyncio.Lock] = {}
        self._token_holders: Dict[str, TokenHolder] = {}

    async def get(self, courier_code: str) -> Optional[PartnerConfigModel]:
        code = normalize_courier_code(courier_code)

        partner = self._cache.get(code)
        if partner is not None:
            return partner

        lock = self._locks.setdefault(code, asyncio.Lock())
        async with lock:
            # another caller may have filled it while we waited
            partner = self._cache.get(code)
            if partner is not None:
                return partner

            partner = self.store.get(code)
            if partner is not None:
                self._cache[code] = partner
                logger.info(
                    extra=context_user_data.get(),
                    msg=f"Partner config for {code} loaded into cache",
                )
            return partner

    def invalidate(self, courier_code: str):
        code = normalize_courier_code(courier_code)
        self._cache.pop(code, None)
        self._token_holders.pop(code, None)
        logger.info(
            extra=context_user_data.get(),
            msg=f"Partner config for {code} invalidated",
        )

    def token_holder(self, courier_code: str) -> TokenHolder:
        code = normalize_courier_code(courier_code)
        holder = self._token_holders.get(code)
        if holder is None:
            holder = self._token_holders[code] = TokenHolder(code)
        return holder

    def active_couriers(
        self, exclude: Iterable[str] = (), supported: Optional[Iterable[str]] = None
    ) -> List[str]:
        """Active couriers that have an integration, sorted by code."""
        excluded = {normalize_courier_code(code) for code in exclude}
        supported = set(courier_service_mapping if supported is None else supported)
        return sorted(
            partner.courierCode
            for partner in self.store.list_configs()
            if partner.is_active
            and partner.courierCode in supported
            and partner.courierCode not in excluded
        )

    # admin flows, every write drops the cached entry for that courier

    def upsert(self, partner) -> PartnerConfigModel:
        stored = self.store.upsert(partner)
        self.invalidate(stored.courierCode)
        return stored

    def set_api_status(self, courier_code: str, api_status: str) -> PartnerConfigModel:
        code = normalize_courier_code(courier_code)
        stored = self.store.set_api_status(code, api_status)
        self.invalidate(code)
        return stored

    def rotate_credentials(self, courier_code: str, credentials: dict) -> PartnerConfigModel:
        code = normalize_courier_code(courier_code)
        stored = self.store.rotate_credentials(code, credentials)
        self.invalidate(code)
        return stored
