from sqlalchemy import (
    Column,
    String,
    Float,
    Boolean,
    Integer,
    ForeignKey,
    TIMESTAMP,
    UniqueConstraint,
)

from database import DBBaseClass, DBBase
from database.db import time_now


class Seller_Rate_Override(DBBase, DBBaseClass):
    __tablename__ = "seller_rate_override"
    __table_args__ = (
        UniqueConstraint(
            "sellerId", "baseRateCardId", name="uq_seller_rate_override_card"
        ),
    )

    sellerId = Column(String(100), nullable=False, index=True)
    baseRateCardId = Column(Integer, ForeignKey("rate_card.id"), nullable=False)

    # NULL inherits the base card value
    baseRate = Column(Float, nullable=True)
    addlRate = Column(Float, nullable=True)
    codAmount = Column(Float, nullable=True)
    codPercent = Column(Float, nullable=True)
    rtoCharges = Column(Float, nullable=True)
    minimumBillableWeight = Column(Float, nullable=True)

    isActive = Column(Boolean, nullable=False, default=True)
    lastUpdated = Column(
        TIMESTAMP(timezone=True), default=time_now, onupdate=time_now, nullable=False
    )

    def to_model(self):
        from modules.rate_card.rate_card_schema import SellerRateOverrideModel

        return SellerRateOverrideModel.model_validate(self)
