from sqlalchemy import Column, String, Float, Boolean, UniqueConstraint

from database import DBBaseClass, DBBase


class Rate_Card(DBBase, DBBaseClass):
    __tablename__ = "rate_card"
    __table_args__ = (
        UniqueConstraint(
            "courier",
            "productName",
            "mode",
            "zone",
            "rateBand",
            name="uq_rate_card_identity",
        ),
    )

    courier = Column(String(100), nullable=False, index=True)
    productName = Column(String(255), nullable=False)
    mode = Column(String(50), nullable=False)
    zone = Column(String(100), nullable=False, index=True)
    rateBand = Column(String(50), nullable=False, default="RBX1")

    baseRate = Column(Float, nullable=False)
    addlRate = Column(Float, nullable=False)
    codAmount = Column(Float, nullable=False, default=0)
    codPercent = Column(Float, nullable=False, default=0)
    rtoCharges = Column(Float, nullable=False, default=0)
    minimumBillableWeight = Column(Float, nullable=False, default=0.5)

    isActive = Column(Boolean, nullable=False, default=True, index=True)

    def to_model(self):
        from modules.rate_card.rate_card_schema import RateCardModel

        return RateCardModel.model_validate(self)

    @classmethod
    def create_db_entity(cls, card_data):
        entity = card_data.model_dump(mode="json")
        return cls(**entity)
