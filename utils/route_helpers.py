from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from auth import TokenExpired, TokenInvalid, decode_access_token
from config import Settings
from database import Database, get_db
from errors import Forbidden, Unauthenticated, UserVanished
from schemas.auth import CurrentUser

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login", auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_by_id(db: Database, user_id: int, include_password=False):
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT id, username, email, password_hash, role FROM users WHERE id = ?", (user_id,))
        row = cursor.fetchone()
        if not row:
            return None
        user = {"id": row["id"], "username": row["username"], "email": row["email"], "role": row["role"]}
        if include_password:
            user["password_hash"] = row["password_hash"]
        return user


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> CurrentUser:
    """Verify the bearer token and reload the caller's current role."""
    if not token:
        raise Unauthenticated("Unauthorized: No token provided.")
    try:
        payload = decode_access_token(token, settings)
    except TokenExpired:
        raise Unauthenticated("Unauthorized: Token expired.")
    except TokenInvalid:
        raise Unauthenticated("Unauthorized: Invalid token.")
    # The role may have changed since the token was issued
    user = get_user_by_id(db, payload["id"])
    if not user:
        raise UserVanished()
    current_user = CurrentUser(**user)
    request.state.user = current_user
    return current_user


def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        raise Forbidden("Forbidden: Administrator privileges required.")
    return current_user


def can_mutate(resource_owner_id: int, caller: CurrentUser) -> bool:
    """Authors may change their own rows; admins may change any row."""
    return resource_owner_id == caller.id or caller.is_admin


def ensure_can_mutate(resource_owner_id: int, caller: CurrentUser, action: str, resource: str):
    if not can_mutate(resource_owner_id, caller):
        raise Forbidden(f"Forbidden: You can only {action} your own {resource}.")
