"""
Security - password hashing, JWT tokens and the request principal
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .errors import AuthorizationError
from prodtrack.models.enums import Role

ALGORITHM = "HS256"

# OAuth2 scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, passed explicitly to every service operation"""
    id: int
    role: Role
    username: str = ""

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles


def ensure_role(actor: Principal, roles: Iterable[Role], action: str) -> None:
    """Raise AuthorizationError unless the actor holds one of the roles"""
    allowed = tuple(roles)
    if actor is None or actor.role not in allowed:
        role = actor.role.value if actor else "anonymous"
        raise AuthorizationError(f"Role {role} is not allowed to {action}")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash using bcrypt"""
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


async def get_current_principal(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Principal:
    """Resolve the bearer token into a Principal, rejecting inactive users"""
    from prodtrack.models import AppUser

    credentials_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_error

    payload = decode_access_token(token)
    if not payload or payload.get("sub") is None:
        raise credentials_error

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise credentials_error

    user = db.query(AppUser).filter(AppUser.id == user_id).first()
    if not user:
        raise credentials_error
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")

    # Role comes from the database so a demotion takes effect immediately
    return Principal(id=user.id, role=Role(user.role), username=user.username)


def require_roles(*roles: Role):
    """
    Route dependency factory.

    Usage:
        @router.post("/x")
        async def x(actor: Principal = Depends(require_roles(Role.ADMIN))): ...
    """
    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        ensure_role(principal, roles, "access this resource")
        return principal
    return dependency


__all__ = [
    "Principal", "ensure_role", "verify_password", "get_password_hash",
    "create_access_token", "decode_access_token", "get_current_principal", "require_roles",
]
