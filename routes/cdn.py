import os

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from blob_store import LocalBlobStore, get_blob_store
from errors import NotFound

router = APIRouter(prefix="/cdn", tags=["cdn"])

@router.get("/posts/{filename}")
def serve_post_image(filename: str, blob_store: LocalBlobStore = Depends(get_blob_store)):
    """Serve an uploaded post image"""
    file_path = blob_store.path_for(filename)
    if not os.path.isfile(file_path):
        raise NotFound("File not found.")
    return FileResponse(file_path)
