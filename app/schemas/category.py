from pydantic import ConfigDict, Field, field_validator
from datetime import datetime

from app.schemas.base import CamelModel


class CategoryCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    icon: str = Field(min_length=1, max_length=50)
    slug: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

    @field_validator("name", "icon", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class CategoryRead(CamelModel):
    id: str
    name: str
    icon: str
    slug: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
