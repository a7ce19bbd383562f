from typing import Any, Optional

from pydantic import BaseModel

from app.schemas.base import CamelModel


class FieldError(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""
    message: str
    code: str
    errors: Optional[Any] = None


class MessageResponse(BaseModel):
    message: str


class ClientConfigRead(CamelModel):
    """Public client configuration (GET /api/config)."""
    google_maps_api_key: Optional[str] = None
