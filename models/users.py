"""User profile Pydantic models for request/response validation.

A profile is created once at onboarding, keyed by the phone-auth identity id.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from models.common import LocationZone, PartialUpdate, UserRole, VersionedDocument


class UserBase(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=80)
    phone_number: str = Field(..., min_length=9, max_length=20)
    whatsapp_number: str = Field(..., min_length=9, max_length=20)
    role: UserRole
    avatar_url: str = ""
    location_zone: LocationZone


class UserCreate(UserBase):
    """Onboarding payload; id and market come from the session and settings."""


class UserUpdate(PartialUpdate):
    display_name: Optional[str] = Field(None, min_length=1, max_length=80)
    phone_number: Optional[str] = Field(None, min_length=9, max_length=20)
    whatsapp_number: Optional[str] = Field(None, min_length=9, max_length=20)
    role: Optional[UserRole] = None
    avatar_url: Optional[str] = None
    location_zone: Optional[LocationZone] = None


class UserResponse(UserBase, VersionedDocument):
    id: str
    shop_id: Optional[str] = None
    market_id: str
    created_at: datetime
    last_active_at: datetime
