import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.util import get_remote_address

from dam.api.v1.endpoints import assets, auth, health
from dam.core.config import Settings, get_settings
from dam.core.container import build_container
from dam.core.handler import register_exception_handlers
from dam.schemas.response import ApiResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting up application...")

    try:
        app.state.container = await build_container(app.state.settings)
    except Exception as e:
        logger.error(f"Failed to initialize application: {e}")
        raise

    yield

    logger.info("Shutting down application...")
    await app.state.container.close()
    logger.info("Connections closed")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.limiter = Limiter(key_func=get_remote_address, storage_uri=settings.RATE_LIMIT_STORAGE_URI)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(assets.router, prefix="/api/assets", tags=["Assets"])
    app.include_router(health.router, tags=["Health"])

    @app.get("/")
    def root():
        """Root health check endpoint."""
        return ApiResponse(
            success=True,
            message="System operational",
            data={"status": "ok"}
        )

    return app


app = create_app()
