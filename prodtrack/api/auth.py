"""
Authentication API - Login, JWT Token
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from prodtrack.core import get_db
from prodtrack.core.security import Principal, create_access_token, get_current_principal
from prodtrack.schemas.user import Token, UserInfo
from prodtrack.services import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    Login with username and password, returns JWT token
    """
    user = UserService.authenticate(db, form_data.username, form_data.password)
    if not user:
        logger.warning(f"Failed login for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive"
        )

    access_token = create_access_token(data={"sub": str(user.id), "role": user.role})
    logger.info(f"User {user.username} logged in")
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserInfo.model_validate(user),
    }


@router.get("/me", response_model=UserInfo)
async def me(
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return UserService.get_user(db, actor.id)
