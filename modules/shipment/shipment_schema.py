from typing import List, Optional

from pydantic import BaseModel, ConfigDict


# callers send many spellings of the same field, the service normalises them
class ShippingRateRequestModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    sellerId: Optional[str] = None


class RateComparisonRequestModel(ShippingRateRequestModel):
    couriers: Optional[List[str]] = None


class BookShipmentRequestModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    orderId: Optional[str] = None
