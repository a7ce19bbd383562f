from pydantic import ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional

from app.schemas.base import CamelModel
from app.schemas.user import UserRead


class ReviewCreate(CamelModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class ReviewUpdate(CamelModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = None

    @field_validator("rating", mode="before")
    @classmethod
    def rating_not_null(cls, value):
        if value is None:
            raise ValueError("rating cannot be null")
        return value


class ReviewRead(CamelModel):
    id: str
    business_id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewWithUser(ReviewRead):
    user: UserRead
