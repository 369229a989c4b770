import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from app.core.config import Settings, get_settings
from app.core.logging import setup_logging
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.error_handling import ErrorHandlingMiddleware
from app.api.endpoints import auth, prompts, settings as settings_endpoints, trash
from app.models.schemas import HealthResponse
from app.storage.base import PromptStorage
from app.storage.selector import build_storage

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[PromptStorage] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use, defaults to the environment
        storage: Prebuilt store; when omitted one is selected at startup
    """
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, log_dir=settings.log_dir)

    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.state.settings = settings
    app.state.storage = storage

    # Add middleware (order matters - last added runs first)
    # Request logging wraps error handling so error bodies carry the request id
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.session_https_only,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api", tags=["auth"])
    app.include_router(prompts.router, prefix="/api", tags=["prompts"])
    app.include_router(trash.router, prefix="/api", tags=["trash"])
    app.include_router(settings_endpoints.router, prefix="/api", tags=["settings"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": settings.app_name, "version": settings.app_version}

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint."""
        store = app.state.storage
        return HealthResponse(
            status="healthy" if store is not None else "starting",
            storage=store.backend_name if store is not None else "none",
        )

    @app.on_event("startup")
    async def startup_event():
        """Select the storage backend unless one was injected."""
        if app.state.storage is None:
            app.state.storage = await build_storage(settings)
        logger.info(f"Using {app.state.storage.backend_name} storage")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Release storage resources."""
        if app.state.storage is not None:
            await app.state.storage.close()

    return app


app = create_app()
