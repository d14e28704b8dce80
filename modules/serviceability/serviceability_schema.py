from typing import Optional, List, Dict, Literal, Any

from pydantic import BaseModel, Field, field_validator

from modules.serviceability.zone_classifier import Zone, normalize_zone
from utils.exception_handler import ShippingError


class DimensionsModel(BaseModel):
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


class RateCalculationRequest(BaseModel):
    # an explicit zone wins over the pincodes
    zone: Optional[Zone] = None
    pickupPincode: Optional[str] = None
    deliveryPincode: Optional[str] = None

    weight: float
    dimensions: Optional[DimensionsModel] = None

    paymentType: Literal["prepaid", "cod"] = "prepaid"
    codCollectableAmount: float = 0

    courier: Optional[str] = None
    mode: Optional[str] = None
    rateBand: Optional[str] = None
    includeRto: bool = False

    @field_validator("zone", mode="before")
    @classmethod
    def canonical_zone(cls, value):
        if value is None:
            return None
        try:
            return normalize_zone(value)
        except ShippingError as e:
            raise ValueError(e.message)


class RateCalculationEntry(BaseModel):
    courier: str
    productName: str
    mode: str
    rateBand: str
    rateCardId: Optional[int] = None

    baseRate: float
    addlRate: float
    minimumBillableWeight: float
    weightMultiplier: int
    billedWeight: float

    shippingCost: float
    codCharges: float
    gst: float
    rtoCharges: float
    total: float

    isOverride: bool = False
    deliveryEstimate: str


class CalculationResultModel(BaseModel):
    zone: Zone
    billedWeight: float
    volumetricWeight: float
    calculations: List[RateCalculationEntry]
    bestOptions: Dict[str, RateCalculationEntry]
    deliveryEstimate: str
    rateSource: Literal["base", "seller-specific"] = "base"
    requestId: str


class RateComparisonEntry(BaseModel):
    courier: str
    success: bool
    rateType: Optional[Literal["RATE_CARD", "API", "FALLBACK"]] = None
    total: Optional[float] = None
    mode: Optional[str] = None
    productName: Optional[str] = None
    deliveryEstimate: Optional[str] = None
    details: Dict[str, Any] = {}
    error: Optional[Dict[str, Any]] = None


class RateComparisonResultModel(BaseModel):
    zone: Optional[Zone] = None
    billedWeight: float
    rates: List[RateComparisonEntry]
    failedCouriers: List[str] = []
    partial: bool = False
    cheapest: Optional[RateComparisonEntry] = None
