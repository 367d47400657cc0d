"""
Shared FastAPI dependencies.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from tripledger.core.security import caller_id_from_claims, decode_access_token
from tripledger.db.session import get_db
from tripledger.models.user import User

security = HTTPBearer(auto_error=False)


def get_token_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    """Verified claims of the bearer token, with ``user_id`` resolved to an int."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = decode_access_token(credentials.credentials)
    user_id = caller_id_from_claims(claims) if claims else None
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {**claims, "user_id": user_id}


def get_current_user(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the caller's profile from the bearer token issued by the auth provider."""
    user = db.query(User).filter(User.id == claims["user_id"]).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )
    return user
