"""
Users API
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from prodtrack.core import get_db
from prodtrack.core.security import Principal, get_current_principal
from prodtrack.schemas.user import PasswordChange, UserCreate, UserInfo
from prodtrack.services import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserInfo, status_code=201)
async def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return UserService.create_user(db, actor, data.username, data.password, data.role, data.full_name)


@router.delete("/{user_id}", response_model=UserInfo)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return UserService.deactivate_user(db, actor, user_id)


@router.post("/{user_id}/password")
async def change_password(
    user_id: int,
    data: PasswordChange,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    UserService.change_password(db, actor, user_id, data.new_password)
    return {"success": True}
