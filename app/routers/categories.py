from fastapi import APIRouter, Depends

from app.core.auth import get_current_user
from app.models.user import User
from app.schemas.category import CategoryCreate, CategoryRead
from app.services.storage import DirectoryStorage, get_storage

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryRead])
def list_categories(storage: DirectoryStorage = Depends(get_storage)):
    """List all categories, name ascending."""
    return storage.list_categories()


@router.get("/{slug}", response_model=CategoryRead)
def get_category(slug: str, storage: DirectoryStorage = Depends(get_storage)):
    """Get a category by its slug."""
    return storage.get_category_by_slug(slug)


@router.post("", response_model=CategoryRead, status_code=201)
def create_category(
    category: CategoryCreate,
    storage: DirectoryStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Create a category. Slugs are unique."""
    return storage.create_category(category)
