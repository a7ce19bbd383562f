import logging
import time
from typing import Optional, Dict, Any
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
import httpx
from jose import jwt, jwk
from jose.exceptions import JWTError, JWKError, ExpiredSignatureError, JWTClaimsError

from app.core.config import settings
from app.models.user import User
from app.services.storage import DirectoryStorage, get_storage

logger = logging.getLogger(__name__)

# Missing credentials are reported as 401 by get_current_identity, not 403 by FastAPI
security = HTTPBearer(auto_error=False)

# JWKS cache with TTL
_jwks_cache: Optional[Dict[str, Any]] = None
_jwks_cache_time: float = 0
JWKS_CACHE_TTL = 600  # 10 minutes in seconds

SUPPORTED_ALGORITHMS = ["ES256", "RS256"]


def _unauthorized(detail: str = "Token verification failed") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def fetch_jwks() -> Dict[str, Any]:
    """
    Fetch the identity provider's JWKS, cached for JWKS_CACHE_TTL seconds.

    A stale cache is served when the endpoint is unreachable.

    Raises:
        HTTPException: 503 if JWKS cannot be fetched and nothing is cached
    """
    global _jwks_cache, _jwks_cache_time

    current_time = time.time()
    if _jwks_cache is not None and (current_time - _jwks_cache_time) < JWKS_CACHE_TTL:
        logger.debug("Using cached JWKS")
        return _jwks_cache

    try:
        logger.info(f"Fetching JWKS from {settings.auth_jwks_url}")
        response = httpx.get(settings.auth_jwks_url, timeout=10.0)
        response.raise_for_status()
        jwks_data = response.json()

        if not isinstance(jwks_data, dict) or "keys" not in jwks_data:
            raise ValueError("Invalid JWKS structure: missing 'keys' field")

        _jwks_cache = jwks_data
        _jwks_cache_time = current_time
        logger.info(f"JWKS fetched successfully, {len(jwks_data.get('keys', []))} keys found")
        return jwks_data

    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Failed to fetch JWKS: {e}")
        if _jwks_cache is not None:
            logger.warning("Using expired JWKS cache due to fetch failure")
            return _jwks_cache
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to verify token: JWKS endpoint unavailable"
        )


def get_signing_key(header: Dict[str, Any], jwks: Dict[str, Any]) -> Dict[str, Any]:
    """Find the JWK whose kid matches the token header."""
    kid = header.get("kid")
    if not kid:
        logger.warning("Token missing 'kid' in header")
        raise _unauthorized()

    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key

    logger.warning(f"Key ID '{kid}' not found in JWKS")
    raise _unauthorized()


def verify_token(token: str) -> dict:
    """
    Verify a bearer JWT against the provider JWKS and return its claims.

    Checks signature, issuer, audience and expiry. The header and JWK
    algorithms must agree when both are present.

    Raises:
        HTTPException: 401 on any verification failure
    """
    try:
        header = jwt.get_unverified_header(token)
    except JWTError as e:
        logger.warning(f"Malformed token header: {e}")
        raise _unauthorized()

    jwks = fetch_jwks()
    jwk_key = get_signing_key(header, jwks)

    try:
        key = jwk.construct(jwk_key)
    except JWKError as e:
        logger.error(f"Failed to construct key from JWK: {e}")
        raise _unauthorized()

    header_alg = header.get("alg")
    jwk_alg = jwk_key.get("alg")
    if header_alg and jwk_alg and header_alg != jwk_alg:
        logger.warning(f"Algorithm mismatch: header={header_alg}, JWK={jwk_alg}")
        raise _unauthorized()

    algorithm = header_alg or jwk_alg or "ES256"
    if algorithm not in SUPPORTED_ALGORITHMS:
        logger.warning(f"Unsupported algorithm: {algorithm}")
        raise _unauthorized()

    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=SUPPORTED_ALGORITHMS,
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
            options={
                "verify_signature": True,
                "verify_aud": True,
                "verify_iss": True,
                "verify_exp": True,
            }
        )
    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise _unauthorized()
    except JWTClaimsError as e:
        logger.warning(f"Token claims validation failed: {e}")
        raise _unauthorized()
    except JWTError as e:
        logger.warning(f"JWT verification error: {e}")
        raise _unauthorized()

    logger.debug(f"Token verified for sub: {payload.get('sub')}")
    return payload


class Identity(BaseModel):
    """The authenticated identity carried by the token."""
    uid: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


def _claim(claims: dict, name: str) -> Optional[str]:
    """Read a profile claim from the top level, falling back to user_metadata."""
    value = claims.get(name)
    if value is None:
        value = (claims.get("user_metadata") or {}).get(name)
    return value


def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security)
) -> Identity:
    """
    Extract and verify the identity from the Bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid, or has no subject
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    claims = verify_token(credentials.credentials)

    uid = claims.get("sub")
    if not uid:
        logger.warning("Token missing subject (sub) claim")
        raise _unauthorized("Token missing subject (sub) claim")

    return Identity(
        uid=str(uid),
        email=claims.get("email"),
        first_name=_claim(claims, "first_name"),
        last_name=_claim(claims, "last_name"),
        profile_image_url=_claim(claims, "profile_image_url"),
    )


def get_current_user(
    identity: Identity = Depends(get_current_identity),
    storage: DirectoryStorage = Depends(get_storage),
) -> User:
    """
    Upsert the user row for the authenticated identity and return it.
    Profile fields are refreshed from the token on every authenticated request.
    """
    return storage.upsert_user(
        user_id=identity.uid,
        email=identity.email,
        first_name=identity.first_name,
        last_name=identity.last_name,
        profile_image_url=identity.profile_image_url,
    )
