import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from string_manager.api.router import api_router
from string_manager.core.config import Settings, settings as default_settings
from string_manager.core.exceptions import AccessDeniedError, InvalidInputError, StorageError
from string_manager.core.logging import setup_logging
from string_manager.db.factory import build_snapshot_policy, build_store
from string_manager.db.store import RecordStore
from string_manager.domains.identity.services import IdentityService
from string_manager.domains.versions.services import VersionPublisher
from string_manager.domains.versions.snapshots import SnapshotPolicy

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    snapshot_policy: Optional[SnapshotPolicy] = None
) -> FastAPI:
    """Сборка приложения; хранилище создается один раз и закрывается при остановке"""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        record_store = store or build_store(settings)
        await record_store.initialize()

        app.state.settings = settings
        app.state.store = record_store
        app.state.publisher = VersionPublisher(record_store, snapshot_policy or build_snapshot_policy(settings))

        if settings.bootstrap_sample_data:
            await IdentityService(record_store).bootstrap_sample_data(
                settings.default_user_email,
                settings.default_user_name
            )

        logger.info("String Manager started")
        try:
            yield
        finally:
            await record_store.close()
            logger.info("String Manager stopped")

    app = FastAPI(
        title="String Manager",
        description="Управление строками локализации и публикация версий",
        version="1.0.0",
        lifespan=lifespan
    )

    # Настройка CORS для работы с frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # В продакшене указать конкретные домены
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AccessDeniedError)
    async def access_denied_handler(request: Request, exc: AccessDeniedError):
        logger.info("Access denied: %s %s", request.method, request.url.path)
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal server error"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal server error"})

    app.include_router(api_router)

    @app.get("/")
    async def root():
        """Корневой эндпоинт"""
        return {
            "message": "String Manager API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health"
        }

    return app


setup_logging(default_settings.log_level)
app = create_app()
