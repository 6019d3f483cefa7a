from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from models.common import LocationZone, PartCategory, PartialUpdate, VersionedDocument


class ShopBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    zone: LocationZone
    categories: list[PartCategory] = Field(default_factory=list)
    whatsapp_number: str = Field(..., min_length=9, max_length=20)
    phone_number: str = Field(..., min_length=9, max_length=20)
    description: str = ""
    avatar_url: str = ""


class ShopCreate(ShopBase):
    """New shop; owner, market and verification are set by the server."""


class ShopUpdate(PartialUpdate):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    zone: Optional[LocationZone] = None
    categories: Optional[list[PartCategory]] = None
    whatsapp_number: Optional[str] = Field(None, min_length=9, max_length=20)
    phone_number: Optional[str] = Field(None, min_length=9, max_length=20)
    description: Optional[str] = None
    avatar_url: Optional[str] = None


class ShopResponse(ShopBase, VersionedDocument):
    id: str
    owner_id: str
    market_id: str
    verified: bool = False
    last_activity_at: datetime
    created_at: datetime
