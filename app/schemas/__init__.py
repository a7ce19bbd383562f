from app.schemas.user import UserRead
from app.schemas.category import CategoryCreate, CategoryRead
from app.schemas.business import (
    BusinessCreate,
    BusinessRead,
    BusinessUpdate,
    BusinessSummary,
    BusinessDetail,
)
from app.schemas.review import ReviewCreate, ReviewRead, ReviewUpdate, ReviewWithUser

__all__ = [
    "UserRead",
    "CategoryCreate",
    "CategoryRead",
    "BusinessCreate",
    "BusinessRead",
    "BusinessUpdate",
    "BusinessSummary",
    "BusinessDetail",
    "ReviewCreate",
    "ReviewRead",
    "ReviewUpdate",
    "ReviewWithUser",
]
