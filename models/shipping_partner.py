from sqlalchemy import Column, String, Text, JSON

from database import DBBaseClass, DBBase


class Shipping_Partner(DBBase, DBBaseClass):
    __tablename__ = "shipping_partner"

    courierCode = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)

    # AES encrypted JSON, see utils.credential_encryption
    credentials = Column(Text, nullable=True)

    rateDefaults = Column(JSON, nullable=False, default={})
    serviceTypes = Column(JSON, nullable=False, default=[])
    weightLimits = Column(JSON, nullable=False, default={})
    dimensionLimits = Column(JSON, nullable=False, default={})

    apiStatus = Column(String(20), nullable=False, default="active")
    trackingUrl = Column(String(500), nullable=True)
    apiEndpoint = Column(String(500), nullable=True)

    def to_model(self):
        from modules.shipping_partner.shipping_partner_schema import (
            PartnerConfigModel,
        )
        from utils.credential_encryption import decrypt_credentials

        return PartnerConfigModel(
            id=self.id,
            uuid=self.uuid,
            created_at=self.created_at,
            updated_at=self.updated_at,
            is_deleted=bool(self.is_deleted),
            courierCode=self.courierCode,
            name=self.name,
            credentials=decrypt_credentials(self.credentials),
            rateDefaults=self.rateDefaults or {},
            serviceTypes=self.serviceTypes or [],
            weightLimits=self.weightLimits or {},
            dimensionLimits=self.dimensionLimits or {},
            apiStatus=self.apiStatus,
            trackingUrl=self.trackingUrl,
            apiEndpoint=self.apiEndpoint,
        )

    @classmethod
    def create_db_entity(cls, partner_data):
        from utils.credential_encryption import encrypt_credentials

        entity = partner_data.model_dump(mode="json")
        entity["credentials"] = encrypt_credentials(entity.get("credentials") or {})
        return cls(**entity)
