"""
User profile lookups and creation.
"""
import logging
from typing import Optional
from sqlalchemy.orm import Session
from tripledger.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from tripledger.db.session import atomic
from tripledger.models.user import User

logger = logging.getLogger(__name__)


def get_user(user_id: int, db: Session) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def get_user_by_email(email: str, db: Session) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user:
        raise NotFoundError("User with this email does not exist")
    return user


def create_user(
    user_id: int,
    name: str,
    email: str,
    db: Session,
    phone: Optional[str] = None,
    verified_email: Optional[str] = None,
) -> User:
    """
    Create the profile for a user already authenticated elsewhere.

    The profile takes the caller's id from the auth provider. When the token
    carries a verified email, the profile email must match it.
    """
    if not name or not name.strip():
        raise ValidationError("Name is required")
    email = email.strip().lower()
    if verified_email and verified_email.strip().lower() != email:
        logger.warning(f"User {user_id} tried to claim email {email}")
        raise PermissionDeniedError("Email does not match the signed-in account")

    if db.query(User).filter(User.id == user_id).first():
        raise ConflictError("Profile already exists")
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email already exists")
    if phone and db.query(User).filter(User.phone == phone).first():
        raise ConflictError("Phone number already exists")

    with atomic(db):
        user = User(id=user_id, name=name.strip(), email=email, phone=phone)
        db.add(user)
    db.refresh(user)

    logger.info(f"Created user {user.id}")
    return user
