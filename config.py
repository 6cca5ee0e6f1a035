"""Application settings.

Values come from environment variables (or a local ``.env`` file), e.g.
``JWT_SECRET``, ``DATABASE_PATH``, ``UPLOAD_FOLDER``.
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COMMUNITIES = [
    "/prj/",
    "/std/",
    "/evt/",
    "/dmp/",
    "/tls/",
    "/tut/",
    "/dsk/",
    "/ot/",
    "/test/",
    "/gen/",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    jwt_secret: str = "dev-secret-change-me"  # Change this in production!
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(60, gt=0)

    database_path: str = "db.sqlite3"
    database_timeout: float = Field(10.0, gt=0)

    upload_folder: str = "uploads"
    public_base_url: str = ""
    max_image_size: int = Field(5 * 1024 * 1024, gt=0)  # 5MB

    cors_origins: List[str] = ["https://siteacc.z5.web.core.windows.net", "http://localhost:3000"]
    communities: List[str] = Field(default_factory=lambda: list(DEFAULT_COMMUNITIES), min_length=1)

    min_password_length: int = Field(6, gt=0)
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
