import logging
import os
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from fastapi import Request

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.webp'}
CONTAINER_NAME = "posts"


class BlobStoreError(Exception):
    """Raised when the underlying storage cannot complete an operation."""


def generate_uuid_filename(original_filename: str) -> str:
    """Generate a UUID filename with original extension"""
    ext = Path(original_filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        ext = '.png'  # Default to PNG if extension not allowed
    return f"{uuid.uuid4()}{ext}"


def is_allowed_image(filename: Optional[str]) -> bool:
    return Path(filename or "").suffix.lower() in ALLOWED_EXTENSIONS


class LocalBlobStore:
    """Post images kept as files under ``<upload_folder>/posts``.

    Deletion is not transactional: callers that pair it with database
    writes must treat a failed delete as a reason to abort.
    """

    def __init__(self, upload_folder: str, public_base_url: str = ""):
        self.folder = os.path.join(upload_folder, CONTAINER_NAME)
        self.public_base_url = public_base_url.rstrip("/")

    def ensure_container(self):
        Path(self.folder).mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> str:
        # Only the final path segment is honoured
        return os.path.join(self.folder, Path(name).name)

    def url_for(self, name: str) -> str:
        return f"{self.public_base_url}/cdn/{CONTAINER_NAME}/{name}"

    def name_from_url(self, url: str) -> Optional[str]:
        path = urlparse(url).path
        name = path.rstrip("/").split("/")[-1]
        return name or None

    def save(self, content: bytes, filename: str) -> str:
        """Store the bytes under a fresh UUID name and return its public URL."""
        uuid_filename = generate_uuid_filename(filename)
        try:
            self.ensure_container()
            with open(self.path_for(uuid_filename), 'wb') as f:
                f.write(content)
        except OSError as e:
            raise BlobStoreError(f"Could not store {uuid_filename}") from e
        logger.info("Stored blob %s (%d bytes)", uuid_filename, len(content))
        return self.url_for(uuid_filename)

    def delete(self, url: str) -> bool:
        """Delete the blob a URL points at, if it exists.

        Returns True when a file was removed, False when there was nothing
        to remove. Raises BlobStoreError if the file could not be removed.
        """
        name = self.name_from_url(url)
        if not name:
            return False
        file_path = self.path_for(name)
        try:
            if not os.path.exists(file_path):
                return False
            os.remove(file_path)
        except OSError as e:
            raise BlobStoreError(f"Could not delete {name}") from e
        logger.info("Deleted blob %s", name)
        return True


def get_blob_store(request: Request) -> LocalBlobStore:
    return request.app.state.blob_store
