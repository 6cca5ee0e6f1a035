"""Removal of a post together with its comments, replies and image.

The database rows go away inside a single transaction. The image lives in
the blob store, which cannot take part in that transaction, so it is
deleted first and its failure aborts the whole operation before any row
is touched. The remaining window is a crash (or a failing statement)
after the image was removed but before COMMIT: the rows then survive
without their image. A stray image left behind by a failed delete is
harmless and is never reported as success.
"""

import logging
from dataclasses import dataclass

from blob_store import BlobStoreError, LocalBlobStore
from database import Database
from errors import BlobDeletionFailed, NotFound
from schemas.auth import CurrentUser
from utils.route_helpers import ensure_can_mutate

logger = logging.getLogger(__name__)


@dataclass
class DeletionResult:
    post_id: int
    comments_deleted: int
    replies_deleted: int
    image_deleted: bool

    @property
    def rows_deleted(self) -> int:
        return 1 + self.comments_deleted + self.replies_deleted


def delete_post_cascade(db: Database, blob_store: LocalBlobStore, post_id: int, caller: CurrentUser) -> DeletionResult:
    with db.transaction() as conn:
        cursor = conn.cursor()

        cursor.execute("SELECT user_id, image_url FROM posts WHERE id = ?", (post_id,))
        row = cursor.fetchone()
        if not row:
            raise NotFound("Post not found.")
        ensure_can_mutate(row["user_id"], caller, "delete", "posts")

        image_deleted = False
        if row["image_url"]:
            try:
                image_deleted = blob_store.delete(row["image_url"])
            except BlobStoreError as e:
                logger.error("Failed to delete image for post %s: %s", post_id, e)
                raise BlobDeletionFailed() from e

        # Leaf first: replies -> comments -> post
        cursor.execute(
            "DELETE FROM replies WHERE comment_id IN (SELECT id FROM comments WHERE post_id = ?)",
            (post_id,),
        )
        replies_deleted = cursor.rowcount
        cursor.execute("DELETE FROM comments WHERE post_id = ?", (post_id,))
        comments_deleted = cursor.rowcount
        cursor.execute("DELETE FROM posts WHERE id = ?", (post_id,))
        if cursor.rowcount == 0:
            raise NotFound("Post not found during deletion.")

    result = DeletionResult(
        post_id=post_id,
        comments_deleted=comments_deleted,
        replies_deleted=replies_deleted,
        image_deleted=image_deleted,
    )
    logger.info(
        "Post %s deleted by user %s (%d comments, %d replies, image removed: %s)",
        post_id, caller.id, comments_deleted, replies_deleted, image_deleted,
    )
    return result
