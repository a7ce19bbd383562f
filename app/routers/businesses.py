import logging
from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.core.auth import get_current_user
from app.core.config import settings
from app.core.exceptions import AccessDeniedError
from app.models.business import Business
from app.models.user import User
from app.schemas.business import (
    BusinessCreate,
    BusinessRead,
    BusinessUpdate,
    BusinessSummary,
    BusinessDetail,
)
from app.schemas.response import MessageResponse
from app.services.storage import BusinessSort, DirectoryStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/businesses", tags=["businesses"])


def _require_owner(business: Business, user: User) -> None:
    if business.owner_id != user.id:
        logger.warning(f"User id={user.id} denied access to business id={business.id}")
        raise AccessDeniedError()


@router.get("", response_model=list[BusinessSummary])
def list_businesses(
    category_id: Optional[str] = Query(None, alias="categoryId", description="Only this category"),
    search: Optional[str] = Query(None, description="Case-insensitive substring of the business name"),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    sort_by: BusinessSort = Query(BusinessSort.newest, alias="sortBy"),
    storage: DirectoryStorage = Depends(get_storage),
):
    """
    List active businesses with their category, average rating and review count.
    Sorting is applied to the full filtered set before the page is cut.
    """
    results = storage.list_businesses(
        category_id=category_id,
        search=search.strip() if search else None,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
    )
    return [BusinessSummary.from_result(result) for result in results]


@router.get("/user/{user_id}", response_model=list[BusinessSummary])
def list_user_businesses(
    user_id: str,
    storage: DirectoryStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """List the caller's own businesses. Other users' lists are not visible."""
    if user_id != current_user.id:
        raise AccessDeniedError()
    results = storage.list_businesses_by_owner(user_id)
    return [BusinessSummary.from_result(result) for result in results]


@router.get("/{business_id}", response_model=BusinessDetail)
def get_business(business_id: str, storage: DirectoryStorage = Depends(get_storage)):
    """
    Get an active business with its category, owner, reviews (newest first)
    and rating aggregate.
    """
    return BusinessDetail.from_result(storage.get_business_detail(business_id))


@router.post("", response_model=BusinessRead, status_code=201)
def create_business(
    business: BusinessCreate,
    storage: DirectoryStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Create a business owned by the caller."""
    return storage.create_business(business, owner_id=current_user.id)


@router.put("/{business_id}", response_model=BusinessRead)
def update_business(
    business_id: str,
    changes: BusinessUpdate,
    storage: DirectoryStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Partially update a business. Owner only."""
    business = storage.get_active_business(business_id)
    _require_owner(business, current_user)
    return storage.update_business(business, changes)


@router.delete("/{business_id}", response_model=MessageResponse)
def delete_business(
    business_id: str,
    storage: DirectoryStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Soft-delete a business (it disappears from reads; reviews are kept). Owner only."""
    business = storage.get_active_business(business_id)
    _require_owner(business, current_user)
    storage.soft_delete_business(business)
    return MessageResponse(message="Business deleted successfully")
