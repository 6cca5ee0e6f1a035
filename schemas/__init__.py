# Schemas package
from .shared import MessageResponse
from .auth import UserCreate, LoginRequest, PasswordUpdate, UserResponse, UserDetail, CurrentUser, UserEnvelope, RegisterResponse, LoginResponse, AdminUserUpdate
from .posts import PostCreate, PostUpdate, PostResponse, CommentCreate, CommentUpdate, CommentResponse, ReplyCreate, ReplyUpdate, ReplyResponse, ImageUploadResponse
from .communities import CommunityResponse, CommunityListResponse
