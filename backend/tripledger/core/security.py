"""
Caller identity from bearer tokens.

Tokens are minted by the external auth provider; this service verifies the
signature and reads the caller's user id. ``create_access_token`` exists for
integrators and the test suite.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from tripledger.core.config import settings


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a token carrying ``data`` plus an expiry claim."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    )
    claims = {**data, "exp": expire}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Verified claims, or None when the token is malformed, forged or expired."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def caller_id_from_claims(claims: dict) -> Optional[int]:
    """User id of the caller; ``user_id`` wins over ``sub``."""
    raw = claims.get("user_id", claims.get("sub"))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None
