"""Feed post (part request) models.

Counters and lifecycle state are owned by the server: they never appear in
create/update payloads.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from models.common import LocationZone, PartCategory, PartialUpdate, PostStatus, PostType, VersionedDocument
from models.users import UserResponse

MAX_POST_IMAGES = 4


class FeedPostBase(BaseModel):
    type: PostType = PostType.REQUEST
    part_name: str = Field(..., min_length=1, max_length=120)
    car_model: str = Field(..., min_length=1, max_length=120)
    year: Optional[str] = Field(None, max_length=9)
    description: str = ""
    images: list[str] = Field(default_factory=list, max_length=MAX_POST_IMAGES)
    urgent: bool = False
    location_zone: LocationZone
    category: Optional[PartCategory] = None


class FeedPostCreate(FeedPostBase):
    """New post; author, market and counters are set by the server."""


class FeedPostUpdate(PartialUpdate):
    nullable_fields = frozenset({"year", "category"})

    part_name: Optional[str] = Field(None, min_length=1, max_length=120)
    car_model: Optional[str] = Field(None, min_length=1, max_length=120)
    year: Optional[str] = Field(None, max_length=9)
    description: Optional[str] = None
    images: Optional[list[str]] = Field(None, max_length=MAX_POST_IMAGES)
    urgent: Optional[bool] = None
    location_zone: Optional[LocationZone] = None
    category: Optional[PartCategory] = None
    status: Optional[PostStatus] = None


class FeedPostResponse(FeedPostBase, VersionedDocument):
    id: str
    author_id: str
    market_id: str
    response_count: int = 0
    interested_count: int = 0
    status: PostStatus
    last_activity_at: datetime
    created_at: datetime


class FeedPage(BaseModel):
    """One page of the feed plus the authors the caller did not already have."""
    items: list[FeedPostResponse]
    authors: dict[str, UserResponse] = Field(default_factory=dict)
    next_cursor: Optional[str] = None
