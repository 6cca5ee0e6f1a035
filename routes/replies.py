from fastapi import APIRouter, Depends
from typing import List

from database import Database, get_db
from errors import NotFound
from schemas import ReplyCreate, ReplyUpdate, ReplyResponse, CurrentUser, MessageResponse
from utils.route_helpers import ensure_can_mutate, get_current_user

router = APIRouter(prefix="/api", tags=["replies"])

REPLY_SELECT = """
    SELECT r.id, r.comment_id, r.user_id, r.reply_text, r.created_at, u.username AS author_username
    FROM replies r
    JOIN users u ON r.user_id = u.id
"""

def row_to_reply(row) -> ReplyResponse:
    return ReplyResponse(
        id=row["id"],
        comment_id=row["comment_id"],
        user_id=row["user_id"],
        reply_text=row["reply_text"],
        created_at=row["created_at"],
        author_username=row["author_username"],
    )

def get_reply_response(db: Database, reply_id: int) -> ReplyResponse:
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(REPLY_SELECT + " WHERE r.id = ?", (reply_id,))
        row = cursor.fetchone()
        if not row:
            raise NotFound("Reply not found.")
        return row_to_reply(row)

@router.get("/comments/{comment_id}/replies", response_model=List[ReplyResponse])
def list_replies(comment_id: int, db: Database = Depends(get_db)):
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(REPLY_SELECT + " WHERE r.comment_id = ? ORDER BY r.created_at ASC, r.id ASC", (comment_id,))
        return [row_to_reply(row) for row in cursor.fetchall()]

@router.post("/comments/{comment_id}/replies", status_code=201, response_model=ReplyResponse)
def create_reply(
    comment_id: int,
    reply: ReplyCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    with db.connect() as conn:
        cursor = conn.cursor()
        # Check if comment exists
        cursor.execute("SELECT 1 FROM comments WHERE id = ?", (comment_id,))
        if not cursor.fetchone():
            raise NotFound("Comment not found.")
        cursor.execute(
            "INSERT INTO replies (comment_id, user_id, reply_text) VALUES (?, ?, ?)",
            (comment_id, current_user.id, reply.content),
        )
        reply_id = cursor.lastrowid
        conn.commit()
    return get_reply_response(db, reply_id)

@router.get("/replies/{reply_id}", response_model=ReplyResponse)
def get_reply(reply_id: int, db: Database = Depends(get_db)):
    return get_reply_response(db, reply_id)

@router.put("/replies/{reply_id}", response_model=ReplyResponse)
def edit_reply(
    reply_id: int,
    reply: ReplyUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT user_id FROM replies WHERE id = ?", (reply_id,))
        row = cursor.fetchone()
        if not row:
            raise NotFound("Reply not found.")
        ensure_can_mutate(row["user_id"], current_user, "edit", "replies")
        cursor.execute(
            "UPDATE replies SET reply_text = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (reply.content, reply_id),
        )
        if cursor.rowcount == 0:
            raise NotFound("Reply not found or no changes made.")
        conn.commit()
    return get_reply_response(db, reply_id)

@router.delete("/replies/{reply_id}", response_model=MessageResponse)
def delete_reply(
    reply_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT user_id FROM replies WHERE id = ?", (reply_id,))
        row = cursor.fetchone()
        if not row:
            raise NotFound("Reply not found.")
        ensure_can_mutate(row["user_id"], current_user, "delete", "replies")
        cursor.execute("DELETE FROM replies WHERE id = ?", (reply_id,))
        if cursor.rowcount == 0:
            raise NotFound("Reply not found or already deleted.")
        conn.commit()
    return MessageResponse(message="Reply deleted successfully.")
