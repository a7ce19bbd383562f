from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi import status
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import DuplicateReviewError
from app.models.review import Review
from app.schemas.review import ReviewCreate
from app.services.storage import DirectoryStorage
from tests.conftest import USER_A, USER_B, USER_C

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def business(make_category, make_business):
    return make_business(make_category())


# --- GET /businesses/{id}/reviews ---


def test_list_reviews_newest_first_with_authors(client, business, make_review, make_user):
    make_user(USER_B, first_name="Kofi")
    make_review(business, USER_B, 5, comment="First", created_at=T0)
    make_review(business, USER_C, 3, comment="Second", created_at=T0 + timedelta(hours=1))

    response = client.get(f"/api/businesses/{business.id}/reviews")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert [r["comment"] for r in data] == ["Second", "First"]
    assert data[1]["user"]["firstName"] == "Kofi"
    assert data[1]["businessId"] == business.id
    assert data[1]["userId"] == USER_B


def test_list_reviews_unknown_business(client):
    response = client.get("/api/businesses/missing/reviews")
    assert response.status_code == status.HTTP_404_NOT_FOUND


# --- POST /businesses/{id}/reviews ---


def test_create_review(client, auth_headers, business):
    response = client.post(
        f"/api/businesses/{business.id}/reviews",
        headers=auth_headers(USER_B),
        json={"rating": 4, "comment": "Neat stitching"},
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["rating"] == 4
    assert data["comment"] == "Neat stitching"
    assert data["userId"] == USER_B
    assert data["businessId"] == business.id


def test_create_review_without_comment(client, auth_headers, business):
    response = client.post(
        f"/api/businesses/{business.id}/reviews",
        headers=auth_headers(USER_B),
        json={"rating": 1},
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["comment"] is None


@pytest.mark.parametrize("payload", [{}, {"rating": 0}, {"rating": 6}, {"rating": "great"}])
def test_create_review_rating_validation(client, auth_headers, business, payload):
    response = client.post(
        f"/api/businesses/{business.id}/reviews",
        headers=auth_headers(USER_B),
        json=payload,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert data["errors"][0]["field"] == "rating"


def test_create_review_requires_auth(client, business):
    response = client.post(f"/api/businesses/{business.id}/reviews", json={"rating": 5})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_create_review_unknown_business(client, auth_headers):
    response = client.post(
        "/api/businesses/missing/reviews",
        headers=auth_headers(USER_B),
        json={"rating": 5},
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_create_review_inactive_business(client, auth_headers, make_category, make_business):
    closed = make_business(make_category(), is_active=False)
    response = client.post(
        f"/api/businesses/{closed.id}/reviews",
        headers=auth_headers(USER_B),
        json={"rating": 5},
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_create_review_twice_is_duplicate(client, auth_headers, business):
    first = client.post(
        f"/api/businesses/{business.id}/reviews",
        headers=auth_headers(USER_B),
        json={"rating": 4},
    )
    assert first.status_code == status.HTTP_201_CREATED

    second = client.post(
        f"/api/businesses/{business.id}/reviews",
        headers=auth_headers(USER_B),
        json={"rating": 2},
    )
    assert second.status_code == status.HTTP_400_BAD_REQUEST
    assert second.json() == {
        "message": "You have already reviewed this business",
        "code": "DUPLICATE_REVIEW",
        "errors": None,
    }


def test_other_user_can_review_same_business(client, auth_headers, business, make_review):
    make_review(business, USER_B, 4)
    response = client.post(
        f"/api/businesses/{business.id}/reviews",
        headers=auth_headers(USER_C),
        json={"rating": 2},
    )
    assert response.status_code == status.HTTP_201_CREATED


def test_duplicate_review_rejected_by_constraint(db_session, business, make_review):
    """The storage layer refuses a second row for the same (business, user)."""
    make_review(business, USER_B, 4)
    db_session.add(Review(business_id=business.id, user_id=USER_B, rating=1))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_lost_insert_race_reports_duplicate(db_session, business, make_review, make_user):
    """When the pre-check misses a concurrent insert, the constraint still wins."""
    make_review(business, USER_B, 4)
    storage = DirectoryStorage(db_session)
    with patch.object(DirectoryStorage, "get_user_review", return_value=None):
        with pytest.raises(DuplicateReviewError):
            storage.create_review(business.id, USER_B, ReviewCreate(rating=5))
    assert db_session.query(Review).count() == 1


# --- PUT /reviews/{id} ---


def test_update_review_as_author(client, auth_headers, business, make_review):
    review = make_review(business, USER_B, 2, comment="Meh")
    response = client.put(
        f"/api/reviews/{review.id}",
        headers=auth_headers(USER_B),
        json={"rating": 5},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["rating"] == 5
    assert data["comment"] == "Meh"

    detail = client.get(f"/api/businesses/{business.id}").json()
    assert detail["averageRating"] == 5


def test_update_review_as_other_user_denied(client, auth_headers, business, make_review):
    review = make_review(business, USER_B, 2)
    response = client.put(
        f"/api/reviews/{review.id}",
        headers=auth_headers(USER_C),
        json={"rating": 5},
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert client.get(f"/api/businesses/{business.id}").json()["averageRating"] == 2


def test_update_review_rejects_null_rating(client, auth_headers, business, make_review):
    review = make_review(business, USER_B, 2)
    response = client.put(
        f"/api/reviews/{review.id}",
        headers=auth_headers(USER_B),
        json={"rating": None},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_update_review_not_found(client, auth_headers):
    response = client.put("/api/reviews/missing", headers=auth_headers(USER_B), json={"rating": 3})
    assert response.status_code == status.HTTP_404_NOT_FOUND


# --- DELETE /reviews/{id} ---


def test_delete_review_as_author(client, auth_headers, business, make_review):
    review = make_review(business, USER_B, 2)
    make_review(business, USER_C, 4)
    response = client.delete(f"/api/reviews/{review.id}", headers=auth_headers(USER_B))
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Review deleted successfully"}

    detail = client.get(f"/api/businesses/{business.id}").json()
    assert detail["reviewCount"] == 1
    assert detail["averageRating"] == 4


def test_delete_review_as_other_user_denied(client, auth_headers, business, make_review):
    review = make_review(business, USER_B, 2)
    response = client.delete(f"/api/reviews/{review.id}", headers=auth_headers(USER_A))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert client.get(f"/api/businesses/{business.id}").json()["reviewCount"] == 1


def test_delete_review_not_found(client, auth_headers):
    response = client.delete("/api/reviews/missing", headers=auth_headers(USER_B))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_reviews_removed_with_business(db_session, business, make_review):
    """Physically removing a business cascades to its reviews."""
    make_review(business, USER_B, 5)
    db_session.delete(business)
    db_session.commit()
    assert db_session.query(Review).count() == 0
