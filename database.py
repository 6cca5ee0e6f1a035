import logging
import sqlite3
from contextlib import contextmanager

from fastapi import Request

from database_schemas import (
    USERS_TABLE_SCHEMA,
    POSTS_TABLE_SCHEMA,
    COMMENTS_TABLE_SCHEMA,
    REPLIES_TABLE_SCHEMA,
    POSTS_COMMUNITY_INDEX,
    COMMENTS_POST_INDEX,
    REPLIES_COMMENT_INDEX,
)

logger = logging.getLogger(__name__)


class Database:
    """Handle on the SQLite file; one connection is opened per unit of work."""

    def __init__(self, path: str, timeout: float = 10.0):
        self.path = path
        self.timeout = timeout

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connect(self):
        conn = self._open()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        """Run a block inside BEGIN IMMEDIATE ... COMMIT, rolling back if it raises.

        The write lock is taken up front, so lock contention fails the block
        before any of its side effects run.
        """
        conn = self._open()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()
        finally:
            conn.close()


def init_db(db: Database):
    with db.connect() as conn:
        cursor = conn.cursor()
        cursor.execute(USERS_TABLE_SCHEMA)
        cursor.execute(POSTS_TABLE_SCHEMA)
        cursor.execute(COMMENTS_TABLE_SCHEMA)
        cursor.execute(REPLIES_TABLE_SCHEMA)
        cursor.execute(POSTS_COMMUNITY_INDEX)
        cursor.execute(COMMENTS_POST_INDEX)
        cursor.execute(REPLIES_COMMENT_INDEX)
        conn.commit()
    logger.info("Database ready at %s", db.path)


def get_db(request: Request) -> Database:
    return request.app.state.db
