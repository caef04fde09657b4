from enum import Enum
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from datetime import datetime
import uuid


class ResourceStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


class ResourceCreate(BaseModel):
    """Fields accepted from JSON bodies and multipart forms alike"""
    name: Optional[str] = None
    resource_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("resource_url", "resourceUrl"),
    )
    expiration_time: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("expiration_time", "expirationTime"),
    )


class Resource(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    resource_url: str
    access_token: str
    expiration_time: datetime
    is_expired: bool
    owner_id: uuid.UUID
    file_key: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    created_at: datetime
    deleted_at: Optional[datetime] = None


class ResourceRead(Resource):
    access_url: str


class SharedLink(BaseModel):
    """Payload served for link resources on the public access route"""
    model_config = ConfigDict(from_attributes=True)

    name: str
    resource_url: str
    expiration_time: datetime
