"""Session, phone OTP, upload and search payloads."""
from pydantic import BaseModel, Field
from typing import Optional

from models.listings import ListingResponse
from models.posts import FeedPostResponse
from models.shops import ShopResponse
from models.users import UserResponse


class SessionResponse(BaseModel):
    user_id: str
    phone_number: Optional[str] = None
    onboarded: bool
    profile: Optional[UserResponse] = None
    unread_count: int = 0


class OtpRequest(BaseModel):
    phone_number: str = Field(..., min_length=9, max_length=20)


class OtpVerify(BaseModel):
    phone_number: str = Field(..., min_length=9, max_length=20)
    code: str = Field(..., min_length=4, max_length=8)


class OtpSent(BaseModel):
    sent: bool = True
    phone_number: str


class AuthTokens(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    user_id: str


class UploadResult(BaseModel):
    url: str


class UploadPath(BaseModel):
    path: str


class SearchResults(BaseModel):
    posts: list[FeedPostResponse] = Field(default_factory=list)
    listings: list[ListingResponse] = Field(default_factory=list)
    shops: list[ShopResponse] = Field(default_factory=list)
