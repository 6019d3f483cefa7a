"""Closed enumerations and the versioned document base shared by all schemas."""
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from database_adapter import SCHEMA_VERSION


class UserRole(str, Enum):
    SHOP_OWNER = "shop_owner"
    MECHANIC = "mechanic"
    BUYER = "buyer"


class LocationZone(str, Enum):
    """Kisekka Market zones"""
    KM1 = "KM1"
    KM2 = "KM2"
    KM3 = "KM3"
    KM4 = "KM4"
    KM5 = "KM5"
    OTHER = "Other"


class PartCategory(str, Enum):
    ENGINE_PARTS = "Engine Parts"
    BODY_PARTS = "Body Parts"
    ELECTRONICS = "Electronics"
    SUSPENSION = "Suspension"
    BRAKES = "Brakes"
    TRANSMISSION = "Transmission"
    INTERIOR = "Interior"
    EXTERIOR = "Exterior"
    LIGHTS = "Lights"
    TYRES_AND_WHEELS = "Tyres & Wheels"
    ACCESSORIES = "Accessories"
    OTHER = "Other"


class PostType(str, Enum):
    REQUEST = "request"
    SOCIAL_SALE = "social_sale"


class PostStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    EXPIRED = "expired"


class ListingCondition(str, Enum):
    NEW = "new"
    USED = "used"
    REFURBISHED = "refurbished"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    EXPIRED = "expired"


class ResponseTarget(str, Enum):
    FEED = "feed"
    MARKETPLACE = "marketplace"


class NotificationType(str, Enum):
    RESPONSE = "response"
    MENTION = "mention"
    CATEGORY_MATCH = "category_match"


class ActivitySignalType(str, Enum):
    WHATSAPP_TAP = "whatsapp_tap"
    POST_VIEW = "post_view"
    RESPONSE_CLICK = "response_click"


class ReportTargetType(str, Enum):
    POST = "post"
    RESPONSE = "response"
    USER = "user"
    SHOP = "shop"


class ReportReason(str, Enum):
    SPAM = "spam"
    INAPPROPRIATE = "inappropriate"
    FAKE = "fake"
    SCAM = "scam"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"
    ACTIONED = "actioned"


class VersionedDocument(BaseModel):
    """Base for every stored record. Unknown schema versions are rejected."""
    schema_version: int = SCHEMA_VERSION

    model_config = ConfigDict(from_attributes=True)

    @field_validator("schema_version", mode="before")
    @classmethod
    def _known_version(cls, value):
        if value is None:
            return SCHEMA_VERSION
        if value != SCHEMA_VERSION:
            raise ValueError(f"unsupported schema_version {value}")
        return value


class PartialUpdate(BaseModel):
    """Base for PATCH payloads: fields may be omitted, but only `nullable_fields` may be sent as null."""
    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def _reject_nulls(cls, data):
        if isinstance(data, dict):
            for key, value in data.items():
                if value is None and key in cls.model_fields and key not in cls.nullable_fields:
                    raise ValueError(f"{key} cannot be null")
        return data
