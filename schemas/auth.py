from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, validator

ROLES = ("user", "admin")


def _check_username(v: str) -> str:
    v = v.strip()
    if len(v) < 3:
        raise ValueError('Username must be at least 3 characters long.')
    if len(v) > 50:
        raise ValueError('Username must be at most 50 characters long.')
    return v


class UserCreate(BaseModel):
    username: str
    email: EmailStr
    password: str

    @validator('username')
    def validate_username(cls, v):
        return _check_username(v)

    @validator('password')
    def validate_password(cls, v):
        if not v:
            raise ValueError('Password is required.')
        return v

class LoginRequest(BaseModel):
    username: str
    password: str

    @validator('username', 'password')
    def validate_present(cls, v):
        if not v:
            raise ValueError('Username and password are required.')
        return v

class PasswordUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: str = Field(alias="oldPassword")
    new_password: str = Field(alias="newPassword")

    @validator('old_password', 'new_password')
    def validate_present(cls, v):
        if not v:
            raise ValueError('Old and new passwords are required.')
        return v

class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str

class UserDetail(UserResponse):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CurrentUser(UserResponse):
    """Identity attached to an authenticated request, reloaded from the database."""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

class UserEnvelope(BaseModel):
    user: UserResponse

class RegisterResponse(BaseModel):
    message: str
    user: UserResponse

class LoginResponse(BaseModel):
    message: str
    token: str
    user: UserResponse

class AdminUserUpdate(BaseModel):
    username: str
    email: EmailStr
    role: str

    @validator('username')
    def validate_username(cls, v):
        return _check_username(v)

    @validator('role')
    def validate_role(cls, v):
        if v not in ROLES:
            raise ValueError('Invalid role specified. Must be "user" or "admin".')
        return v
