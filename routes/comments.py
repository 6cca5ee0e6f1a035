from fastapi import APIRouter, Depends
from typing import List

from database import Database, get_db
from errors import NotFound
from schemas import CommentCreate, CommentUpdate, CommentResponse, CurrentUser, MessageResponse
from utils.route_helpers import ensure_can_mutate, get_current_user
from routes.posts import post_exists

router = APIRouter(prefix="/api", tags=["comments"])

COMMENT_SELECT = """
    SELECT c.id, c.post_id, c.user_id, c.comment_text, c.created_at, u.username AS author_username
    FROM comments c
    JOIN users u ON c.user_id = u.id
"""

def row_to_comment(row) -> CommentResponse:
    return CommentResponse(
        id=row["id"],
        post_id=row["post_id"],
        user_id=row["user_id"],
        comment_text=row["comment_text"],
        created_at=row["created_at"],
        author_username=row["author_username"],
    )

def get_comment_response(db: Database, comment_id: int) -> CommentResponse:
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(COMMENT_SELECT + " WHERE c.id = ?", (comment_id,))
        row = cursor.fetchone()
        if not row:
            raise NotFound("Comment not found.")
        return row_to_comment(row)

@router.get("/posts/{post_id}/comments", response_model=List[CommentResponse])
def list_comments(post_id: int, db: Database = Depends(get_db)):
    if not post_exists(db, post_id):
        raise NotFound("Post not found.")
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(COMMENT_SELECT + " WHERE c.post_id = ? ORDER BY c.created_at ASC, c.id ASC", (post_id,))
        return [row_to_comment(row) for row in cursor.fetchall()]

@router.post("/posts/{post_id}/comments", status_code=201, response_model=CommentResponse)
def create_comment(
    post_id: int,
    comment: CommentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    with db.connect() as conn:
        cursor = conn.cursor()
        # Check if post exists
        cursor.execute("SELECT 1 FROM posts WHERE id = ?", (post_id,))
        if not cursor.fetchone():
            raise NotFound("Post not found.")
        cursor.execute(
            "INSERT INTO comments (post_id, user_id, comment_text) VALUES (?, ?, ?)",
            (post_id, current_user.id, comment.content),
        )
        comment_id = cursor.lastrowid
        conn.commit()
    return get_comment_response(db, comment_id)

@router.get("/comments/{comment_id}", response_model=CommentResponse)
def get_comment(comment_id: int, db: Database = Depends(get_db)):
    return get_comment_response(db, comment_id)

@router.put("/comments/{comment_id}", response_model=CommentResponse)
def edit_comment(
    comment_id: int,
    comment: CommentUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT user_id FROM comments WHERE id = ?", (comment_id,))
        row = cursor.fetchone()
        if not row:
            raise NotFound("Comment not found.")
        ensure_can_mutate(row["user_id"], current_user, "edit", "comments")
        cursor.execute(
            "UPDATE comments SET comment_text = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (comment.content, comment_id),
        )
        if cursor.rowcount == 0:
            raise NotFound("Comment not found or no changes made.")
        conn.commit()
    return get_comment_response(db, comment_id)

@router.delete("/comments/{comment_id}", response_model=MessageResponse)
def delete_comment(
    comment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT user_id FROM comments WHERE id = ?", (comment_id,))
        row = cursor.fetchone()
        if not row:
            raise NotFound("Comment not found.")
        ensure_can_mutate(row["user_id"], current_user, "delete", "comments")
        # Replies go with it through ON DELETE CASCADE
        cursor.execute("DELETE FROM comments WHERE id = ?", (comment_id,))
        if cursor.rowcount == 0:
            raise NotFound("Comment not found or already deleted.")
        conn.commit()
    return MessageResponse(message="Comment deleted successfully.")
