"""
User Schemas
"""
from pydantic import BaseModel
from typing import Optional

from prodtrack.models.enums import Role

class UserCreate(BaseModel):
    username: str
    password: str
    role: Role
    full_name: Optional[str] = None

class PasswordChange(BaseModel):
    new_password: str

class UserInfo(BaseModel):
    id: int
    username: str
    full_name: Optional[str]
    role: str
    is_active: bool

    class Config:
        from_attributes = True

class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserInfo
