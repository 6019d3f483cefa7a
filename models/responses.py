"""Responses to feed posts and marketplace listings."""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from models.common import ResponseTarget, VersionedDocument


class PostResponseCreate(BaseModel):
    post_id: str
    post_type: ResponseTarget = ResponseTarget.FEED
    message: str = Field(..., min_length=1, max_length=2000)
    price: Optional[float] = Field(None, ge=0)
    images: list[str] = Field(default_factory=list, max_length=4)
    shop_id: Optional[str] = None


class PostResponseRecord(VersionedDocument):
    id: str
    post_id: str
    post_type: ResponseTarget
    responder_id: str
    shop_id: Optional[str] = None
    message: str
    price: Optional[float] = None
    images: list[str] = Field(default_factory=list)
    whatsapp_taps: int = 0
    created_at: datetime


class ContactLink(BaseModel):
    url: str
