import os

# Settings are read when app.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("AUTH_ISSUER", "https://auth.example.test/auth/v1")

import base64  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from unittest.mock import patch  # noqa: E402

import pytest  # noqa: E402
import jwt as pyjwt  # noqa: E402
from cryptography.hazmat.primitives import serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import rsa  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.core.config import settings  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.business import Business  # noqa: E402
from app.models.category import Category  # noqa: E402
from app.models.review import Review  # noqa: E402
from app.models.user import User  # noqa: E402
from app.seed.seed_data import seed_db  # noqa: E402


# Use a SQLite file database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enforce foreign keys (and ON DELETE CASCADE) in SQLite."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def seeded_db(db_session):
    """Create a database session with seeded data."""
    seed_db(db_session)
    return db_session


@pytest.fixture(scope="function")
def seeded_client(seeded_db, client):
    """Test client over the seeded database."""
    return client


# Test JWT key pair (generated once)
_test_private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
_test_public_key = _test_private_key.public_key()


def _create_test_jwks(public_key, kid="test-key-id"):
    """Create a test JWKS structure from a public key."""
    public_numbers = public_key.public_numbers()

    def int_to_base64url(n):
        byte_length = (n.bit_length() + 7) // 8
        n_bytes = n.to_bytes(byte_length, 'big')
        b64 = base64.urlsafe_b64encode(n_bytes).decode('utf-8')
        return b64.rstrip('=')

    return {
        "keys": [
            {
                "kty": "RSA",
                "kid": kid,
                "use": "sig",
                "alg": "RS256",
                "n": int_to_base64url(public_numbers.n),
                "e": int_to_base64url(public_numbers.e),
            }
        ]
    }


def _create_test_token(
    private_key,
    sub,
    email=None,
    exp=None,
    aud=None,
    iss=None,
    kid="test-key-id",
    **extra_claims,
):
    """Create a signed RS256 JWT with the given claims."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": sub,
        "aud": aud if aud is not None else settings.auth_audience,
        "iss": iss if iss is not None else settings.auth_issuer,
        "exp": exp if exp is not None else int((now + timedelta(hours=1)).timestamp()),
        "iat": int(now.timestamp()),
        **extra_claims,
    }
    if email is not None:
        claims["email"] = email

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')

    headers = {"kid": kid, "alg": "RS256", "typ": "JWT"}
    return pyjwt.encode(claims, private_pem, algorithm="RS256", headers=headers)


# Identity provider subjects used across tests
USER_A = "550e8400-e29b-41d4-a716-446655440000"
USER_B = "550e8400-e29b-41d4-a716-446655440001"
USER_C = "550e8400-e29b-41d4-a716-446655440002"


@pytest.fixture
def mock_jwks():
    """Mock JWKS so JWT verification uses the test key."""
    test_jwks = _create_test_jwks(_test_public_key)
    with patch("app.core.auth.fetch_jwks", return_value=test_jwks):
        yield test_jwks


@pytest.fixture
def create_test_token():
    """Factory for signed test tokens."""
    def _create(sub=USER_A, email=None, **kwargs):
        return _create_test_token(_test_private_key, sub=sub, email=email, **kwargs)
    return _create


@pytest.fixture
def auth_headers(mock_jwks, create_test_token):
    """Factory for Authorization headers; each subject gets a distinct email."""
    def _headers(sub=USER_A, **kwargs):
        kwargs.setdefault("email", f"user-{sub}@example.com")
        return {"Authorization": f"Bearer {create_test_token(sub=sub, **kwargs)}"}
    return _headers


# --- row factories -----------------------------------------------------------


@pytest.fixture
def make_user(db_session):
    def _make(user_id=USER_A, **fields):
        user = db_session.get(User, user_id)
        if user is None:
            fields.setdefault("email", f"user-{user_id}@example.com")
            user = User(id=user_id, **fields)
            db_session.add(user)
            db_session.commit()
        return user
    return _make


@pytest.fixture
def make_category(db_session):
    def _make(name="Tailors", slug=None, icon="shirt"):
        category = Category(name=name, slug=slug or name.lower().replace(" ", "-"), icon=icon)
        db_session.add(category)
        db_session.commit()
        return category
    return _make


@pytest.fixture
def make_business(db_session, make_user):
    def _make(category, name="Acme Tailors", owner_id=USER_A, **fields):
        if owner_id is not None:
            make_user(owner_id)
        fields.setdefault("address", "12 Main St")
        business = Business(name=name, category_id=category.id, owner_id=owner_id, **fields)
        db_session.add(business)
        db_session.commit()
        return business
    return _make


@pytest.fixture
def make_review(db_session, make_user):
    def _make(business, user_id, rating, **fields):
        make_user(user_id)
        review = Review(business_id=business.id, user_id=user_id, rating=rating, **fields)
        db_session.add(review)
        db_session.commit()
        return review
    return _make
