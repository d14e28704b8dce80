from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator

import config

# schema
from schema.base import DBBaseModel
from modules.serviceability.zone_classifier import Zone, normalize_zone
from utils.exception_handler import ShippingError


RATE_CARD_MODES = ("Surface", "Air", "Express", "Standard", "Premium")

# numeric fields a seller override may replace
OVERRIDABLE_FIELDS = (
    "baseRate",
    "addlRate",
    "codAmount",
    "codPercent",
    "rtoCharges",
    "minimumBillableWeight",
)


def normalize_mode(value) -> str:
    if not isinstance(value, str):
        raise ValueError("mode must be a string")
    for mode in RATE_CARD_MODES:
        if mode.lower() == value.strip().lower():
            return mode
    raise ValueError(f"mode must be one of {', '.join(RATE_CARD_MODES)}")


class RateCardInsertModel(BaseModel):
    courier: str = Field(min_length=1)
    productName: str = Field(min_length=1)
    mode: str
    zone: Zone
    rateBand: str = config.DEFAULT_RATE_BAND

    baseRate: float = Field(ge=0)
    addlRate: float = Field(ge=0)
    codAmount: float = Field(default=0, ge=0)
    codPercent: float = Field(default=0, ge=0, le=100)
    rtoCharges: float = Field(default=0, ge=0)
    minimumBillableWeight: float = Field(
        default=config.DEFAULT_MIN_BILLABLE_WEIGHT, gt=0
    )

    isActive: bool = True

    @field_validator("courier", "productName", "rateBand", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("mode", mode="before")
    @classmethod
    def canonical_mode(cls, value):
        return normalize_mode(value)

    @field_validator("zone", mode="before")
    @classmethod
    def canonical_zone(cls, value):
        try:
            return normalize_zone(value)
        except ShippingError as e:
            raise ValueError(e.message)

    def identity(self) -> tuple:
        return (
            self.courier,
            self.productName,
            self.mode,
            Zone(self.zone).value,
            self.rateBand,
        )


class RateCardModel(RateCardInsertModel, DBBaseModel):
    pass


class SellerRateOverrideInsertModel(BaseModel):
    sellerId: str = Field(min_length=1)
    baseRateCardId: int

    # None means "inherit from the base card"
    baseRate: Optional[float] = Field(default=None, ge=0)
    addlRate: Optional[float] = Field(default=None, ge=0)
    codAmount: Optional[float] = Field(default=None, ge=0)
    codPercent: Optional[float] = Field(default=None, ge=0, le=100)
    rtoCharges: Optional[float] = Field(default=None, ge=0)
    minimumBillableWeight: Optional[float] = Field(default=None, gt=0)

    isActive: bool = True
    lastUpdated: Optional[datetime] = None

    def overridden_fields(self) -> Dict[str, float]:
        return {
            field: getattr(self, field)
            for field in OVERRIDABLE_FIELDS
            if getattr(self, field) is not None
        }


class SellerRateOverrideModel(SellerRateOverrideInsertModel, DBBaseModel):
    pass


class EffectiveRateCardModel(RateCardModel):
    isOverride: bool = False
    overrideId: Optional[int] = None
    baseRateCardId: Optional[int] = None


class BulkImportRowError(BaseModel):
    row: int
    errors: Dict[str, Any]


class BulkImportResultModel(BaseModel):
    created: int = 0
    updated: int = 0
    failed: list[BulkImportRowError] = []
