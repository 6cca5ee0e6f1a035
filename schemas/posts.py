from pydantic import BaseModel, ConfigDict, Field, validator
from typing import Optional
from datetime import datetime

MAX_TITLE_LENGTH = 200
MAX_TEXT_LENGTH = 10000
MAX_COMMUNITY_LENGTH = 50


def _check_text(v: str, label: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    v = v.strip() if v is not None else v
    if not v:
        raise ValueError(f'{label} is required.')
    if len(v) > max_length:
        raise ValueError(f'{label} must be at most {max_length} characters long.')
    return v


def _check_community(v: str) -> str:
    v = v.strip() if v is not None else v
    if not v:
        raise ValueError('Community is required.')
    if len(v) > MAX_COMMUNITY_LENGTH:
        raise ValueError('Invalid community format.')
    return v


class PostCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    content: str
    community: str
    image_url: Optional[str] = Field(None, alias="imageUrl")

    @validator('title')
    def validate_title(cls, v):
        return _check_text(v, 'Title', MAX_TITLE_LENGTH)

    @validator('content')
    def validate_content(cls, v):
        return _check_text(v, 'Content')

    @validator('community')
    def validate_community(cls, v):
        return _check_community(v)

    @validator('image_url')
    def validate_image_url(cls, v):
        # The client sends an empty string when no image was attached
        if v is not None and not v.strip():
            return None
        return v

class PostUpdate(BaseModel):
    title: str
    content: str
    community: Optional[str] = None

    @validator('title')
    def validate_title(cls, v):
        return _check_text(v, 'Title', MAX_TITLE_LENGTH)

    @validator('content')
    def validate_content(cls, v):
        return _check_text(v, 'Content')

    @validator('community')
    def validate_community(cls, v):
        if v is None:
            return v
        return _check_community(v)

class PostResponse(BaseModel):
    id: int
    user_id: int
    title: str
    content: str
    image_url: Optional[str] = None
    community: str
    created_at: datetime
    author_username: Optional[str] = None
    comment_count: int = 0
    reply_count: int = 0

class CommentCreate(BaseModel):
    content: str

    @validator('content')
    def validate_content(cls, v):
        return _check_text(v, 'Comment content')

class CommentUpdate(CommentCreate):
    pass

class CommentResponse(BaseModel):
    id: int
    post_id: int
    user_id: int
    comment_text: str
    created_at: datetime
    author_username: Optional[str] = None

class ReplyCreate(BaseModel):
    content: str

    @validator('content')
    def validate_content(cls, v):
        return _check_text(v, 'Reply content')

class ReplyUpdate(ReplyCreate):
    pass

class ReplyResponse(BaseModel):
    id: int
    comment_id: int
    user_id: int
    reply_text: str
    created_at: datetime
    author_username: Optional[str] = None

class ImageUploadResponse(BaseModel):
    imageUrl: str
