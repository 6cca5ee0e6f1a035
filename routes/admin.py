import logging
from typing import List

from fastapi import APIRouter, Depends

from database import Database, get_db
from errors import Conflict, NotFound, ValidationError
from schemas import AdminUserUpdate, CurrentUser, MessageResponse, UserDetail
from utils.route_helpers import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["admin"])

USER_COLUMNS = "id, username, email, role, created_at, updated_at"

def row_to_user(row) -> UserDetail:
    return UserDetail(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        role=row["role"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )

def get_user_detail(db: Database, user_id: int) -> UserDetail:
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
        row = cursor.fetchone()
        if not row:
            raise NotFound("User not found.")
        return row_to_user(row)

@router.get("", response_model=List[UserDetail])
def list_users(current_user: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    """Admin: all users, ordered by username."""
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(f"SELECT {USER_COLUMNS} FROM users ORDER BY username")
        return [row_to_user(row) for row in cursor.fetchall()]

@router.get("/{user_id}", response_model=UserDetail)
def get_user(user_id: int, current_user: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    return get_user_detail(db, user_id)

@router.put("/{user_id}", response_model=UserDetail)
def update_user(
    user_id: int,
    body: AdminUserUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: Database = Depends(get_db),
):
    """Admin: change username, email and role. Passwords are not editable here."""
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT id FROM users WHERE (username = ? OR email = ?) AND id <> ?",
            (body.username, body.email, user_id),
        )
        if cursor.fetchone():
            raise Conflict("Username or email already exists for another user.")
        cursor.execute(
            "UPDATE users SET username = ?, email = ?, role = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (body.username, body.email, body.role, user_id),
        )
        if cursor.rowcount == 0:
            raise NotFound("User not found.")
        conn.commit()
    logger.info("Admin %s updated user %s (role=%s)", current_user.id, user_id, body.role)
    return get_user_detail(db, user_id)

@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, current_user: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    """Admin: delete a user. Their posts, comments and replies follow via ON DELETE CASCADE."""
    if user_id == current_user.id:
        raise ValidationError("Admin cannot delete their own account.")
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM users WHERE id = ?", (user_id,))
        if cursor.rowcount == 0:
            raise NotFound("User not found.")
        conn.commit()
    logger.info("Admin %s deleted user %s", current_user.id, user_id)
    return MessageResponse(message="User deleted successfully.")
