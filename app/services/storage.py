"""
Database access for the directory: users, categories, businesses and reviews.

``DirectoryStorage`` wraps one SQLAlchemy session and is handed to routers
through ``Depends(get_storage)``. Ownership and authorship checks belong to
the routers; this layer raises ``NotFoundError``/``DuplicateError`` style
exceptions for everything it can decide on its own.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from fastapi import Depends
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, contains_eager, joinedload

from app.core.exceptions import (
    DuplicateError,
    DuplicateReviewError,
    InvalidDataError,
    NotFoundError,
)
from app.db.session import get_db
from app.models.business import Business
from app.models.category import Category
from app.models.review import Review
from app.models.user import User
from app.schemas.business import BusinessCreate, BusinessUpdate
from app.schemas.category import CategoryCreate
from app.schemas.review import ReviewCreate, ReviewUpdate

logger = logging.getLogger(__name__)


class BusinessSort(str, Enum):
    newest = "newest"
    rating = "rating"
    name = "name"


@dataclass
class BusinessSummaryResult:
    """A business (category loaded) with its derived rating aggregate."""
    business: Business
    average_rating: float
    review_count: int


@dataclass
class BusinessDetailResult(BusinessSummaryResult):
    reviews: list[Review] = field(default_factory=list)


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so the search term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _average(ratings: list[int]) -> float:
    return sum(ratings) / len(ratings) if ratings else 0.0


class DirectoryStorage:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def _email_taken(self, email: str, user_id: str) -> bool:
        return (
            self.db.query(User.id)
            .filter(User.email == email, User.id != user_id)
            .first()
            is not None
        )

    def upsert_user(
        self,
        *,
        user_id: str,
        email: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        profile_image_url: str | None = None,
    ) -> User:
        """
        Insert the user on first sight, otherwise refresh the profile fields
        that the identity provider supplied. Concurrent first requests for the
        same identity resolve to the same row.

        An email already held by another user is not copied; the row keeps
        its previous email (or none).
        """
        profile = {
            "email": email,
            "first_name": first_name,
            "last_name": last_name,
            "profile_image_url": profile_image_url,
        }
        provided = {k: v for k, v in profile.items() if v is not None}
        if email is not None and self._email_taken(email, user_id):
            logger.warning(f"Email {email} belongs to another user; not assigned to id={user_id}")
            provided.pop("email")

        user = self.get_user(user_id)
        if user:
            changed = {k: v for k, v in provided.items() if getattr(user, k) != v}
            if changed:
                for key, value in changed.items():
                    setattr(user, key, value)
                try:
                    self.db.commit()
                except IntegrityError:
                    # Another user claimed the email between check and write
                    self.db.rollback()
                    logger.warning(f"Profile refresh rejected for id={user_id}")
                    user = self.get_user(user_id)
                    if user is None:
                        raise
                    return user
                self.db.refresh(user)
            return user

        logger.info(f"Creating user id={user_id}, email={provided.get('email')}")
        user = User(id=user_id, **provided)
        self.db.add(user)
        try:
            self.db.commit()
            self.db.refresh(user)
            return user
        except IntegrityError:
            self.db.rollback()
            user = self.get_user(user_id)
            if user is not None:
                return user
            if "email" not in provided:
                raise
            # Lost a race for the email; create the row without it
            provided.pop("email")
            user = User(id=user_id, **provided)
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            return user

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self) -> list[Category]:
        return self.db.query(Category).order_by(Category.name.asc()).all()

    def get_category(self, category_id: str) -> Optional[Category]:
        return self.db.query(Category).filter(Category.id == category_id).first()

    def get_category_by_slug(self, slug: str) -> Category:
        category = self.db.query(Category).filter(Category.slug == slug).first()
        if not category:
            raise NotFoundError("Category not found")
        return category

    def create_category(self, data: CategoryCreate) -> Category:
        if self.db.query(Category).filter(Category.slug == data.slug).first():
            raise DuplicateError(
                "Category slug already exists",
                details=[{"field": "slug", "message": f"'{data.slug}' is already in use"}],
            )
        category = Category(**data.model_dump())
        self.db.add(category)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(
                "Category slug already exists",
                details=[{"field": "slug", "message": f"'{data.slug}' is already in use"}],
            )
        self.db.refresh(category)
        logger.info(f"Created category id={category.id}, slug={category.slug}")
        return category

    # ------------------------------------------------------------------
    # Businesses
    # ------------------------------------------------------------------

    def _summary_query(self):
        """
        Businesses joined to their category and to a per-business review
        aggregate. Yields (Business, average_rating, review_count) rows.
        """
        review_stats = (
            self.db.query(
                Review.business_id.label("business_id"),
                func.avg(Review.rating).label("average_rating"),
                func.count(Review.id).label("review_count"),
            )
            .group_by(Review.business_id)
            .subquery()
        )
        average_rating = func.coalesce(review_stats.c.average_rating, 0)
        review_count = func.coalesce(review_stats.c.review_count, 0)
        query = (
            self.db.query(
                Business,
                average_rating.label("average_rating"),
                review_count.label("review_count"),
            )
            .join(Business.category)
            .outerjoin(review_stats, review_stats.c.business_id == Business.id)
            .options(contains_eager(Business.category))
            .filter(Business.is_active.is_(True))
        )
        return query, average_rating

    @staticmethod
    def _to_summaries(rows) -> list[BusinessSummaryResult]:
        return [
            BusinessSummaryResult(
                business=business,
                average_rating=float(avg or 0),
                review_count=int(count or 0),
            )
            for business, avg, count in rows
        ]

    def list_businesses(
        self,
        *,
        category_id: str | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
        sort_by: BusinessSort = BusinessSort.newest,
    ) -> list[BusinessSummaryResult]:
        """
        Active businesses, optionally in one category and/or with ``search``
        occurring anywhere in the name (case-insensitive).

        The whole filtered set is ordered before LIMIT/OFFSET so pages are
        consistent across requests. Ties fall back to newest first, then id.
        """
        query, average_rating = self._summary_query()

        if category_id:
            query = query.filter(Business.category_id == category_id)
        if search:
            query = query.filter(Business.name.ilike(f"%{_escape_like(search)}%", escape="\\"))

        if sort_by == BusinessSort.rating:
            ordering = [average_rating.desc()]
        elif sort_by == BusinessSort.name:
            ordering = [func.lower(Business.name).asc(), Business.name.asc()]
        else:
            ordering = []
        ordering += [Business.created_at.desc(), Business.id.asc()]

        rows = query.order_by(*ordering).limit(limit).offset(offset).all()
        return self._to_summaries(rows)

    def list_businesses_by_owner(self, owner_id: str) -> list[BusinessSummaryResult]:
        """
        Active businesses owned by ``owner_id``, newest first.

        Soft-deleted businesses are excluded here too, so owners do not see
        their own deactivated listings.
        """
        query, _ = self._summary_query()
        rows = (
            query.filter(Business.owner_id == owner_id)
            .order_by(Business.created_at.desc(), Business.id.asc())
            .all()
        )
        return self._to_summaries(rows)

    def get_active_business(self, business_id: str) -> Business:
        business = (
            self.db.query(Business)
            .filter(Business.id == business_id, Business.is_active.is_(True))
            .first()
        )
        if not business:
            raise NotFoundError("Business not found")
        return business

    def get_business_detail(self, business_id: str) -> BusinessDetailResult:
        """
        One active business with category, owner and reviews (newest first,
        each with its author).

        The rating aggregate is computed from the fetched reviews, so the list
        and the numbers always describe the same set.
        """
        business = (
            self.db.query(Business)
            .options(joinedload(Business.category), joinedload(Business.owner))
            .filter(Business.id == business_id, Business.is_active.is_(True))
            .first()
        )
        if not business:
            raise NotFoundError("Business not found")

        reviews = self._reviews_with_authors(business_id)
        ratings = [review.rating for review in reviews]
        return BusinessDetailResult(
            business=business,
            average_rating=_average(ratings),
            review_count=len(ratings),
            reviews=reviews,
        )

    def _require_category(self, category_id: str) -> None:
        if self.get_category(category_id) is None:
            raise InvalidDataError(
                "Invalid business data",
                details=[{"field": "categoryId", "message": "Category not found"}],
            )

    def create_business(self, data: BusinessCreate, owner_id: str) -> Business:
        self._require_category(data.category_id)
        business = Business(**data.model_dump(), owner_id=owner_id)
        self.db.add(business)
        self.db.commit()
        self.db.refresh(business)
        logger.info(f"Created business id={business.id}, owner_id={owner_id}")
        return business

    def update_business(self, business: Business, data: BusinessUpdate) -> Business:
        changes = data.model_dump(exclude_unset=True)
        if "category_id" in changes:
            self._require_category(changes["category_id"])
        for key, value in changes.items():
            setattr(business, key, value)
        self.db.commit()
        self.db.refresh(business)
        logger.info(f"Updated business id={business.id}: fields={sorted(changes)}")
        return business

    def soft_delete_business(self, business: Business) -> None:
        """Deactivate the business. Its reviews stay in place."""
        business.is_active = False
        self.db.commit()
        logger.info(f"Deactivated business id={business.id}")

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def _reviews_with_authors(self, business_id: str) -> list[Review]:
        return (
            self.db.query(Review)
            .options(joinedload(Review.user))
            .filter(Review.business_id == business_id)
            .order_by(Review.created_at.desc(), Review.id.asc())
            .all()
        )

    def list_reviews(self, business_id: str) -> list[Review]:
        """
        Reviews for a business, newest first. Deactivated businesses still
        return their reviews; unknown ids are not found.
        """
        exists = self.db.query(Business.id).filter(Business.id == business_id).first()
        if not exists:
            raise NotFoundError("Business not found")
        return self._reviews_with_authors(business_id)

    def get_user_review(self, business_id: str, user_id: str) -> Optional[Review]:
        return (
            self.db.query(Review)
            .filter(Review.business_id == business_id, Review.user_id == user_id)
            .first()
        )

    def get_review(self, review_id: str) -> Review:
        review = self.db.query(Review).filter(Review.id == review_id).first()
        if not review:
            raise NotFoundError("Review not found")
        return review

    def create_review(self, business_id: str, user_id: str, data: ReviewCreate) -> Review:
        """
        Add ``user_id``'s review of an active business.

        Raises:
            NotFoundError: business missing or deactivated
            DuplicateReviewError: the user already reviewed this business,
                including when a concurrent request won the insert
        """
        self.get_active_business(business_id)
        if self.get_user_review(business_id, user_id):
            raise DuplicateReviewError()

        review = Review(business_id=business_id, user_id=user_id, **data.model_dump())
        self.db.add(review)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Duplicate review insert rejected: business_id={business_id}, user_id={user_id}")
            raise DuplicateReviewError()
        self.db.refresh(review)
        logger.info(f"Created review id={review.id}, business_id={business_id}, rating={review.rating}")
        return review

    def update_review(self, review: Review, data: ReviewUpdate) -> Review:
        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(review, key, value)
        self.db.commit()
        self.db.refresh(review)
        logger.info(f"Updated review id={review.id}: fields={sorted(changes)}")
        return review

    def delete_review(self, review: Review) -> None:
        review_id = review.id
        self.db.delete(review)
        self.db.commit()
        logger.info(f"Deleted review id={review_id}")


def get_storage(db: Session = Depends(get_db)) -> DirectoryStorage:
    """Request-scoped storage bound to the request's session."""
    return DirectoryStorage(db)
