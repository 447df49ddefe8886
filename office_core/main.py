import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from office_core.api.router import api_router
from office_core.core.config import AppSettings, settings
from office_core.core.errors import StorageError
from office_core.core.logging_config import setup_logging
from office_core.db.repositories import DocumentRepository, KeyedStore, SettingsRegistry
from office_core.domains.assistant.services import AssistantClient
from office_core.domains.documents.services import DocumentManager
from office_core.domains.settings.schemas import UserSettings
from office_core.domains.spreadsheet.references import GridBounds

logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[AppSettings] = None) -> FastAPI:
    """Сборка приложения: хранилище, настройки и менеджер документов живут в app.state"""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(app_settings.log_level, app_settings.log_format)

        store = KeyedStore.from_url(app_settings.database_url, echo=app_settings.database_echo)
        registry = SettingsRegistry(store)
        user_settings = UserSettings()
        try:
            await store.initialize()
            user_settings = await registry.load()
        except StorageError as e:
            # Приложение работает без хранилища; /health сообщает degraded
            logger.error(f"Starting without storage: {e}")

        manager = DocumentManager(
            DocumentRepository(store),
            user_settings,
            bounds=GridBounds(app_settings.grid_columns, app_settings.grid_rows)
        )
        if store.is_ready:
            try:
                await manager.load()
            except StorageError as e:
                logger.error(f"Cannot load documents: {e}")

        app.state.app_settings = app_settings
        app.state.store = store
        app.state.settings_registry = registry
        app.state.user_settings = user_settings
        app.state.manager = manager
        app.state.assistant = AssistantClient(app_settings)
        logger.info("Office core started")

        yield

        manager.session.close()
        manager.session.scheduler.cancel_all()
        await store.dispose()
        logger.info("Office core stopped")

    app = FastAPI(
        title="Office Core",
        description="Локальное ядро офисного пакета: документы, таблицы, презентации",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/")
    async def root():
        """Корневой эндпоинт"""
        return {
            "message": "Office Core API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()


def run() -> None:
    """Запуск локального сервера"""
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
