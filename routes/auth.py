import logging
import sqlite3

from fastapi import APIRouter, Depends

from auth import hash_password, verify_password, create_access_token
from config import Settings
from database import Database, get_db
from errors import Conflict, Unauthenticated, ValidationError, NotFound
from schemas import (
    UserCreate,
    LoginRequest,
    PasswordUpdate,
    UserResponse,
    CurrentUser,
    UserEnvelope,
    RegisterResponse,
    LoginResponse,
    MessageResponse,
)
from utils.route_helpers import get_app_settings, get_current_user, get_user_by_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["authentication"])

INVALID_CREDENTIALS = "Invalid credentials."
# Verified against for unknown usernames so every failed login runs bcrypt
DUMMY_PASSWORD_HASH = hash_password("unknown-user-placeholder")

def get_user_by_username(db: Database, username: str, include_password=False):
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT id, username, email, password_hash, role FROM users WHERE username = ?", (username,))
        row = cursor.fetchone()
        if not row:
            return None
        user = {"id": row["id"], "username": row["username"], "email": row["email"], "role": row["role"]}
        if include_password:
            user["password_hash"] = row["password_hash"]
        return user

def check_password_length(password: str, settings: Settings, label: str = "Password"):
    if len(password) < settings.min_password_length:
        raise ValidationError(f"{label} must be at least {settings.min_password_length} characters long.")

@router.post("/register", status_code=201, response_model=RegisterResponse)
def register(
    user: UserCreate,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    check_password_length(user.password, settings)

    hashed = hash_password(user.password)
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT id FROM users WHERE username = ? OR email = ?", (user.username, user.email))
        if cursor.fetchone():
            raise Conflict("Username or email already exists.")
        try:
            cursor.execute(
                "INSERT INTO users (username, email, password_hash) VALUES (?, ?, ?)",
                (user.username, user.email, hashed),
            )
        except sqlite3.IntegrityError:
            # Lost a race with a concurrent registration
            raise Conflict("Username or email already exists.")
        user_id = cursor.lastrowid
        conn.commit()

    created = get_user_by_id(db, user_id)
    logger.info("User registered: id=%s username=%s", created["id"], created["username"])
    return RegisterResponse(message="User registered successfully.", user=UserResponse(**created))

@router.post("/login", response_model=LoginResponse)
def login(
    login_data: LoginRequest,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = get_user_by_username(db, login_data.username, include_password=True)
    # Same answer for unknown username and wrong password
    if not user:
        verify_password(login_data.password, DUMMY_PASSWORD_HASH)
        raise Unauthenticated(INVALID_CREDENTIALS)
    if not verify_password(login_data.password, user["password_hash"]):
        raise Unauthenticated(INVALID_CREDENTIALS)

    token = create_access_token(user, settings)
    logger.info("User logged in: id=%s username=%s role=%s", user["id"], user["username"], user["role"])
    user.pop("password_hash")
    return LoginResponse(message="Login successful.", token=token, user=UserResponse(**user))

@router.post("/logout", response_model=MessageResponse)
def logout():
    """Tokens are stateless; the client drops its copy."""
    return MessageResponse(message="Logout successful.")

@router.get("/me", response_model=UserEnvelope)
def get_me(current_user: CurrentUser = Depends(get_current_user)):
    return UserEnvelope(user=current_user)

@router.put("/update-password", response_model=MessageResponse)
def update_password(
    body: PasswordUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    check_password_length(body.new_password, settings, label="New password")
    if body.old_password == body.new_password:
        raise ValidationError("New password cannot be the same as the old password.")

    user = get_user_by_id(db, current_user.id, include_password=True)
    if not user:
        raise NotFound("User not found.")
    if not verify_password(body.old_password, user["password_hash"]):
        raise Unauthenticated("Incorrect old password.")

    hashed = hash_password(body.new_password)
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "UPDATE users SET password_hash = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (hashed, current_user.id),
        )
        conn.commit()
    logger.info("Password updated for user id=%s", current_user.id)
    return MessageResponse(message="Password updated successfully.")
