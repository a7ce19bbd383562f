import logging
from fastapi import APIRouter, Depends

from app.core.auth import get_current_user
from app.core.exceptions import AccessDeniedError
from app.models.review import Review
from app.models.user import User
from app.schemas.response import MessageResponse
from app.schemas.review import ReviewCreate, ReviewRead, ReviewUpdate, ReviewWithUser
from app.services.storage import DirectoryStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews"])


def _require_author(review: Review, user: User) -> None:
    if review.user_id != user.id:
        logger.warning(f"User id={user.id} denied access to review id={review.id}")
        raise AccessDeniedError()


@router.get("/businesses/{business_id}/reviews", response_model=list[ReviewWithUser])
def list_reviews(business_id: str, storage: DirectoryStorage = Depends(get_storage)):
    """List reviews for a business with author info, newest first."""
    return storage.list_reviews(business_id)


@router.post("/businesses/{business_id}/reviews", response_model=ReviewRead, status_code=201)
def create_review(
    business_id: str,
    review: ReviewCreate,
    storage: DirectoryStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Review a business. One review per user per business."""
    return storage.create_review(business_id, current_user.id, review)


@router.put("/reviews/{review_id}", response_model=ReviewRead)
def update_review(
    review_id: str,
    changes: ReviewUpdate,
    storage: DirectoryStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Partially update a review. Author only."""
    review = storage.get_review(review_id)
    _require_author(review, current_user)
    return storage.update_review(review, changes)


@router.delete("/reviews/{review_id}", response_model=MessageResponse)
def delete_review(
    review_id: str,
    storage: DirectoryStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Delete a review. Author only."""
    review = storage.get_review(review_id)
    _require_author(review, current_user)
    storage.delete_review(review)
    return MessageResponse(message="Review deleted successfully")
