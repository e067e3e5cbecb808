"""
User Service - User directory used to resolve actors, patients and doctors.
"""
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging

from ..core.security import hash_password, verify_password
from ..exceptions import NotFoundError, ValidationError
from .models import User, UserRole

# Set up logging
logger = logging.getLogger(__name__)

def find_one(db: Session, user_id: str) -> User:
    """
    Get a user by ID.

    Args:
        db: Database session
        user_id: ID of the user

    Returns:
        User: The user

    Raises:
        NotFoundError: If no such user exists
    """
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user

def find_by_email(db: Session, email: str) -> Optional[User]:
    """Return the user with this email, or None."""
    return db.query(User).filter(User.email == email.lower()).first()

def create_user(db: Session, name: str, email: str, password: str, role: UserRole = UserRole.PATIENT) -> User:
    """
    Create a user with a bcrypt-hashed password.

    Raises:
        ValidationError: If the email is already registered
    """
    user = User(
        name=name,
        email=email.lower(),
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Email already registered")
    db.refresh(user)
    logger.info(f"Created {role.value} user {user.id}")
    return user

def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Check a user's credentials.

    Returns:
        Optional[User]: The user if the password matches, otherwise None
    """
    user = find_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user
