from pydantic import BaseModel, ConfigDict
from datetime import datetime
from uuid import UUID
from typing import Optional, Any


# Generic response model for all responses
class GenericResponseModel(BaseModel):
    status_code: int
    message: Optional[str] = None
    status: bool = False
    data: Any = {}


# Base model for all models that will be stored in the database
class DBBaseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    uuid: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_deleted: bool = False
