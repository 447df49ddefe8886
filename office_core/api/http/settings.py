from fastapi import APIRouter, Depends, Request

from office_core.api.deps import get_manager, get_settings_registry, storage_unavailable
from office_core.core.errors import StorageError
from office_core.db.repositories.settings_repository import SettingsRegistry
from office_core.domains.documents.services import DocumentManager
from office_core.domains.settings.schemas import UserSettings, UserSettingsUpdate

router = APIRouter(prefix="/settings", tags=["settings"])


async def _store(
    request: Request,
    new_settings: UserSettings,
    registry: SettingsRegistry,
    manager: DocumentManager
) -> UserSettings:
    try:
        await registry.save(new_settings)
    except StorageError as e:
        raise storage_unavailable(e)
    request.app.state.user_settings = new_settings
    manager.apply_settings(new_settings)
    return new_settings


@router.get("/", response_model=UserSettings)
async def get_settings(request: Request):
    """Текущие настройки"""
    return request.app.state.user_settings


@router.put("/", response_model=UserSettings)
async def replace_settings(
    new_settings: UserSettings,
    request: Request,
    registry: SettingsRegistry = Depends(get_settings_registry),
    manager: DocumentManager = Depends(get_manager)
):
    """Полная замена настроек"""
    return await _store(request, new_settings, registry, manager)


@router.patch("/", response_model=UserSettings)
async def update_settings(
    update: UserSettingsUpdate,
    request: Request,
    registry: SettingsRegistry = Depends(get_settings_registry),
    manager: DocumentManager = Depends(get_manager)
):
    """Частичное обновление: слияние с текущими настройками"""
    current: UserSettings = request.app.state.user_settings
    merged = current.merged(**update.model_dump(exclude_none=True))
    return await _store(request, merged, registry, manager)
