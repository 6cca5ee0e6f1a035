import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blob_store import LocalBlobStore
from config import Settings, get_settings
from database import Database, init_db
from errors import register_exception_handlers
from routes.auth import router as auth_router
from routes.communities import router as communities_router
from routes.posts import router as posts_router
from routes.comments import router as comments_router
from routes.replies import router as replies_router
from routes.admin import router as admin_router
from routes.cdn import router as cdn_router
from utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup failures are fatal: the server must not accept requests without its database
    try:
        init_db(app.state.db)
        app.state.blob_store.ensure_container()
    except Exception:
        logger.critical("Startup failed", exc_info=True)
        raise
    logger.info("Blob container ready at %s", app.state.blob_store.folder)
    yield


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Discussion Board API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = Database(settings.database_path, timeout=settings.database_timeout)
    app.state.blob_store = LocalBlobStore(settings.upload_folder, settings.public_base_url)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth_router)
    app.include_router(communities_router)
    app.include_router(posts_router)
    app.include_router(comments_router)
    app.include_router(replies_router)
    app.include_router(admin_router)
    app.include_router(cdn_router)

    if not settings.jwt_secret or settings.jwt_secret == Settings.model_fields["jwt_secret"].default:
        logger.warning("JWT_SECRET is not set; using the development secret.")
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=5000, reload=True)
