from fastapi import HTTPException, Request, status

from office_core.core.errors import StorageError
from office_core.db.repositories.settings_repository import SettingsRegistry
from office_core.domains.assistant.services import AssistantClient
from office_core.domains.documents.services import DocumentManager


def get_manager(request: Request) -> DocumentManager:
    """Менеджер документов приложения"""
    return request.app.state.manager


def get_settings_registry(request: Request) -> SettingsRegistry:
    return request.app.state.settings_registry


def get_assistant(request: Request) -> AssistantClient:
    return request.app.state.assistant


def storage_unavailable(exc: StorageError) -> HTTPException:
    """Ошибка хранилища -> 503; состояние в памяти не трогаем"""
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Storage error: {exc}"
    )
