from fastapi import APIRouter, Depends

from app.core.auth import get_current_user
from app.core.config import settings
from app.models.user import User
from app.schemas.response import ClientConfigRead
from app.schemas.user import UserRead

router = APIRouter(tags=["auth"])


@router.get("/auth/user", response_model=UserRead)
def get_authenticated_user(current_user: User = Depends(get_current_user)):
    """
    Get the authenticated user's record.
    The row is created (or its profile refreshed) by get_current_user.
    """
    return current_user


@router.get("/config", response_model=ClientConfigRead)
def get_client_config():
    """Public configuration the browser client needs (map widget key)."""
    return ClientConfigRead(google_maps_api_key=settings.google_maps_api_key)
