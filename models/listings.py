from pydantic import BaseModel, Field, computed_field
from typing import Literal, Optional
from datetime import datetime

from models.common import ListingCondition, ListingStatus, LocationZone, PartCategory, PartialUpdate, VersionedDocument
from models.shops import ShopResponse
from models.users import UserResponse
from services.formatting import format_price

MAX_LISTING_IMAGES = 5


class ListingBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=120)
    price: float = Field(..., ge=0)
    condition: ListingCondition
    category: PartCategory
    car_model: Optional[str] = Field(None, max_length=120)
    description: str = ""
    images: list[str] = Field(default_factory=list, max_length=MAX_LISTING_IMAGES)
    location_zone: LocationZone


class ListingCreate(ListingBase):
    shop_id: Optional[str] = None


class ListingUpdate(PartialUpdate):
    nullable_fields = frozenset({"car_model"})

    title: Optional[str] = Field(None, min_length=1, max_length=120)
    price: Optional[float] = Field(None, ge=0)
    condition: Optional[ListingCondition] = None
    category: Optional[PartCategory] = None
    car_model: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = None
    images: Optional[list[str]] = Field(None, max_length=MAX_LISTING_IMAGES)
    location_zone: Optional[LocationZone] = None
    status: Optional[ListingStatus] = None


class ListingResponse(ListingBase, VersionedDocument):
    id: str
    seller_id: str
    shop_id: Optional[str] = None
    currency: Literal["UGX"] = "UGX"
    market_id: str
    engagement_count: int = 0
    status: ListingStatus
    last_activity_at: datetime
    created_at: datetime

    @computed_field
    @property
    def price_display(self) -> str:
        return format_price(self.price)


class ListingPage(BaseModel):
    items: list[ListingResponse]
    sellers: dict[str, UserResponse] = Field(default_factory=dict)
    shops: dict[str, ShopResponse] = Field(default_factory=dict)
    next_cursor: Optional[str] = None
