from typing import Optional, Dict, Any, List, Literal

from pydantic import BaseModel, Field, field_validator

# schema
from schema.base import DBBaseModel


class RateDefaultsModel(BaseModel):
    baseRate: float = Field(default=0, ge=0)
    weightRate: float = Field(default=0, ge=0)


class WeightLimitsModel(BaseModel):
    min: float = Field(default=0, ge=0)
    max: Optional[float] = Field(default=None, gt=0)


class DimensionLimitsModel(BaseModel):
    maxLength: Optional[float] = Field(default=None, gt=0)
    maxWidth: Optional[float] = Field(default=None, gt=0)
    maxHeight: Optional[float] = Field(default=None, gt=0)


class PartnerConfigInsertModel(BaseModel):
    courierCode: str = Field(min_length=1)
    name: str
    credentials: Dict[str, Any] = {}

    rateDefaults: RateDefaultsModel = RateDefaultsModel()
    serviceTypes: List[str] = []
    weightLimits: WeightLimitsModel = WeightLimitsModel()
    dimensionLimits: DimensionLimitsModel = DimensionLimitsModel()

    apiStatus: Literal["active", "inactive"] = "active"
    trackingUrl: Optional[str] = None
    apiEndpoint: Optional[str] = None

    @field_validator("apiStatus", mode="before")
    @classmethod
    def lower_status(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def is_active(self) -> bool:
        return self.apiStatus == "active"

    def tracking_link(self, awb: str) -> Optional[str]:
        if not self.trackingUrl:
            return None
        if "{awb}" in self.trackingUrl:
            return self.trackingUrl.replace("{awb}", awb)
        return self.trackingUrl + awb


class PartnerConfigModel(PartnerConfigInsertModel, DBBaseModel):
    pass
