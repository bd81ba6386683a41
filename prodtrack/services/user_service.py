"""
User Service - accounts, login and password management
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from prodtrack.core.errors import NotFoundError, ValidationError
from prodtrack.core.security import Principal, ensure_role, get_password_hash, verify_password
from prodtrack.models import AppUser
from prodtrack.models.enums import Role
from .audit_service import AuditService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4


class UserService:

    @staticmethod
    def authenticate(db: Session, username: str, password: str) -> Optional[AppUser]:
        """Return the user when the password matches; the caller checks is_active"""
        user = db.query(AppUser).filter(AppUser.username == username).first()
        if not user or not user.hashed_password:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    def get_user(db: Session, user_id: int) -> AppUser:
        user = db.query(AppUser).filter(AppUser.id == user_id).first()
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def create_user(
        db: Session,
        actor: Principal,
        username: str,
        password: str,
        role: Role,
        full_name: Optional[str] = None
    ) -> AppUser:
        ensure_role(actor, (Role.ADMIN,), "create users")
        username = (username or "").strip()
        if not username:
            raise ValidationError("Username is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if db.query(AppUser).filter(AppUser.username == username).first():
            raise ValidationError(f"Username {username} is already taken")

        user = AppUser(
            username=username,
            full_name=full_name,
            hashed_password=get_password_hash(password),
            role=Role(role).value,
            is_active=True
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"User {username} ({user.role}) created by user {actor.id}")
        AuditService.record(db, actor, "CREATE", "User", user.id, {"username": username, "role": user.role})
        return user

    @staticmethod
    def deactivate_user(db: Session, actor: Principal, user_id: int) -> AppUser:
        """Users are never removed; the row stays for the audit trail and the name is freed"""
        ensure_role(actor, (Role.ADMIN,), "delete users")
        if user_id == actor.id:
            raise ValidationError("You cannot delete your own account")

        user = UserService.get_user(db, user_id)
        old_username = user.username
        user.is_active = False
        user.username = f"{old_username}_deleted_{int(datetime.now().timestamp())}"
        db.commit()
        db.refresh(user)

        logger.info(f"User {old_username} deactivated by user {actor.id}")
        AuditService.record(db, actor, "DELETE", "User", user_id, {"username": old_username})
        return user

    @staticmethod
    def change_password(db: Session, actor: Principal, user_id: int, new_password: str) -> None:
        ensure_role(actor, (Role.ADMIN,), "change passwords")
        if len(new_password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        user = UserService.get_user(db, user_id)
        user.hashed_password = get_password_hash(new_password)
        db.commit()

        logger.info(f"Password of user {user.username} changed by user {actor.id}")
        AuditService.record(db, actor, "CHANGE_PASSWORD", "User", user_id)
