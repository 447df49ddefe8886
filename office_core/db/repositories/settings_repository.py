import logging

from office_core.db.repositories.keyed_store import SETTINGS, KeyedStore
from office_core.domains.settings.schemas import SETTINGS_ID, UserSettings

logger = logging.getLogger(__name__)


class SettingsRegistry:
    """Хранение единственной записи пользовательских настроек"""

    def __init__(self, store: KeyedStore):
        self.store = store

    async def load(self) -> UserSettings:
        """Сохранённые настройки или значения по умолчанию (первый запуск)"""
        record = await self.store.get(SETTINGS, SETTINGS_ID)
        if record is None:
            logger.info("No stored settings, using defaults")
            return UserSettings()
        record.pop("id", None)
        return UserSettings.model_validate(record)

    async def save(self, settings: UserSettings) -> UserSettings:
        """Полная запись настроек; слияние делает вызывающий"""
        await self.store.put(SETTINGS, {"id": SETTINGS_ID, **settings.model_dump()})
        logger.debug("Settings saved")
        return settings
