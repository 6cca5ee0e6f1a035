import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from blob_store import BlobStoreError, LocalBlobStore, get_blob_store, is_allowed_image
from cascade import delete_post_cascade
from config import Settings
from database import Database, get_db
from errors import InternalError, NotFound, ValidationError
from schemas import CurrentUser, ImageUploadResponse, MessageResponse, PostCreate, PostResponse, PostUpdate
from utils.route_helpers import ensure_can_mutate, get_app_settings, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["posts"])

# Direct comments and replies-via-comments are counted per post
POST_SELECT = """
    SELECT
        p.id, p.user_id, p.title, p.content, p.image_url, p.community, p.created_at,
        u.username AS author_username,
        COALESCE(c.comment_count, 0) AS comment_count,
        COALESCE(r.reply_count, 0) AS reply_count
    FROM posts p
    JOIN users u ON p.user_id = u.id
    LEFT JOIN (
        SELECT post_id, COUNT(*) AS comment_count
        FROM comments
        GROUP BY post_id
    ) c ON p.id = c.post_id
    LEFT JOIN (
        SELECT comments.post_id, COUNT(replies.id) AS reply_count
        FROM comments
        JOIN replies ON comments.id = replies.comment_id
        GROUP BY comments.post_id
    ) r ON p.id = r.post_id
"""

def row_to_post(row) -> PostResponse:
    return PostResponse(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        content=row["content"],
        image_url=row["image_url"],
        community=row["community"],
        created_at=row["created_at"],
        author_username=row["author_username"],
        comment_count=row["comment_count"],
        reply_count=row["reply_count"],
    )

def get_post_response(db: Database, post_id: int) -> PostResponse:
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(POST_SELECT + " WHERE p.id = ?", (post_id,))
        row = cursor.fetchone()
        if not row:
            raise NotFound("Post not found.")
        return row_to_post(row)

def post_exists(db: Database, post_id: int) -> bool:
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT 1 FROM posts WHERE id = ?", (post_id,))
        return cursor.fetchone() is not None

@router.get("/posts", response_model=List[PostResponse])
def list_posts(community: Optional[str] = Query(None), db: Database = Depends(get_db)):
    with db.connect() as conn:
        cursor = conn.cursor()
        if community:
            cursor.execute(
                POST_SELECT + " WHERE p.community = ? ORDER BY p.created_at DESC, p.id DESC",
                (community,),
            )
        else:
            cursor.execute(POST_SELECT + " ORDER BY p.created_at DESC, p.id DESC")
        return [row_to_post(row) for row in cursor.fetchall()]

@router.get("/posts/{post_id}", response_model=PostResponse)
def get_post(post_id: int, db: Database = Depends(get_db)):
    return get_post_response(db, post_id)

@router.post("/posts", status_code=201, response_model=PostResponse)
def create_post(
    post: PostCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "INSERT INTO posts (user_id, title, content, image_url, community) VALUES (?, ?, ?, ?, ?)",
            (current_user.id, post.title, post.content, post.image_url, post.community),
        )
        post_id = cursor.lastrowid
        conn.commit()
    logger.info("Post %s created by user %s in %s", post_id, current_user.id, post.community)
    return get_post_response(db, post_id)

@router.put("/posts/{post_id}", response_model=PostResponse)
def edit_post(
    post_id: int,
    post: PostUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT user_id FROM posts WHERE id = ?", (post_id,))
        row = cursor.fetchone()
        if not row:
            raise NotFound("Post not found.")
        ensure_can_mutate(row["user_id"], current_user, "edit", "posts")

        fields = ["title = ?", "content = ?"]
        params = [post.title, post.content]
        if post.community is not None:
            fields.append("community = ?")
            params.append(post.community)
        fields.append("updated_at = CURRENT_TIMESTAMP")
        params.append(post_id)
        cursor.execute(f"UPDATE posts SET {', '.join(fields)} WHERE id = ?", params)
        if cursor.rowcount == 0:
            raise NotFound("Post not found or no changes made.")
        conn.commit()
    return get_post_response(db, post_id)

@router.delete("/posts/{post_id}", response_model=MessageResponse)
def delete_post(
    post_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    delete_post_cascade(db, blob_store, post_id, current_user)
    return MessageResponse(message="Post deleted successfully.")

@router.post("/upload-image", response_model=ImageUploadResponse)
def upload_image(
    image: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_app_settings),
):
    if image is None or not image.filename:
        raise ValidationError("No image file provided.")
    if not is_allowed_image(image.filename):
        raise ValidationError("Unsupported file type.")
    content = image.file.read()
    if not content:
        raise ValidationError("No image file provided.")
    if len(content) > settings.max_image_size:
        raise ValidationError("Image exceeds the maximum allowed size.")
    try:
        url = blob_store.save(content, image.filename)
    except BlobStoreError:
        logger.exception("Image upload failed for user %s", current_user.id)
        raise InternalError("Image upload failed due to server error.")
    return ImageUploadResponse(imageUrl=url)
