from pydantic import ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from app.schemas.base import CamelModel
from app.schemas.category import CategoryRead
from app.schemas.review import ReviewWithUser
from app.schemas.user import UserRead

if TYPE_CHECKING:
    from app.services.storage import BusinessDetailResult, BusinessSummaryResult

REQUIRED_TEXT_FIELDS = ("name", "address", "category_id")


class BusinessBase(CamelModel):
    description: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    image_url: Optional[str] = None


class BusinessCreate(BusinessBase):
    name: str = Field(min_length=1, max_length=200)
    address: str = Field(min_length=1)
    category_id: str = Field(min_length=1)

    @field_validator(*REQUIRED_TEXT_FIELDS, mode="before")
    @classmethod
    def strip_required(cls, value):
        return value.strip() if isinstance(value, str) else value


class BusinessUpdate(BusinessBase):
    """Partial update. Ownership, activity and verification are not client-writable."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    address: Optional[str] = Field(default=None, min_length=1)
    category_id: Optional[str] = Field(default=None, min_length=1)

    @field_validator(*REQUIRED_TEXT_FIELDS, mode="before")
    @classmethod
    def required_not_null(cls, value):
        if value is None:
            raise ValueError("field cannot be null")
        return value.strip() if isinstance(value, str) else value


class BusinessRead(BusinessBase):
    id: str
    name: str
    address: str
    category_id: str
    owner_id: Optional[str] = None
    is_verified: bool = False
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BusinessSummary(BusinessRead):
    category: CategoryRead
    average_rating: float = 0
    review_count: int = 0

    @classmethod
    def from_result(cls, result: "BusinessSummaryResult") -> "BusinessSummary":
        business = result.business
        return cls(
            **BusinessRead.model_validate(business).model_dump(),
            category=CategoryRead.model_validate(business.category),
            average_rating=result.average_rating,
            review_count=result.review_count,
        )


class BusinessDetail(BusinessSummary):
    owner: Optional[UserRead] = None
    reviews: list[ReviewWithUser] = []

    @classmethod
    def from_result(cls, result: "BusinessDetailResult") -> "BusinessDetail":
        business = result.business
        return cls(
            **BusinessRead.model_validate(business).model_dump(),
            category=CategoryRead.model_validate(business.category),
            owner=UserRead.model_validate(business.owner) if business.owner is not None else None,
            reviews=[ReviewWithUser.model_validate(review) for review in result.reviews],
            average_rating=result.average_rating,
            review_count=result.review_count,
        )
