"""
User profile routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from tripledger.db.session import get_db
from tripledger.schemas.user import UserCreate, UserResponse
from tripledger.models.user import User
from tripledger.api.dependencies import get_current_user, get_token_claims
from tripledger.services.user_service import create_user, get_user

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def complete_profile(
    user_data: UserCreate,
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db)
):
    """Create the profile of the signed-in caller, under their auth provider id."""
    return create_user(
        claims["user_id"],
        user_data.name,
        user_data.email,
        db,
        phone=user_data.phone,
        verified_email=claims.get("email")
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return current_user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_by_id(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get user by ID."""
    return get_user(user_id, db)
