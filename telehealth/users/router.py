"""
User Router - Login and current-user endpoints.

Registration, MFA and refresh tokens are handled outside this service;
these endpoints only identify the caller of the medical record API.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
import logging

from ..database import get_db
from ..auth.dependencies import get_current_user
from ..core.security import create_access_token
from .models import User
from .schemas import UserResponse, TokenResponse
from .service import authenticate_user

# Set up logging
logger = logging.getLogger(__name__)

auth_router = APIRouter()
users_router = APIRouter()

@auth_router.post("/login", response_model=TokenResponse)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    Exchange email and password for a bearer token.

    The OAuth2 form field ``username`` carries the email address.
    """
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user:
        logger.warning(f"Failed login attempt for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = create_access_token({"sub": user.id, "role": user.role.value})
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))

@users_router.get("/me", response_model=UserResponse)
def read_current_user(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's profile"""
    return current_user
