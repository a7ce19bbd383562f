from app.models.user import User
from app.models.category import Category
from app.models.business import Business
from app.models.review import Review

__all__ = [
    "User",
    "Category",
    "Business",
    "Review",
]
