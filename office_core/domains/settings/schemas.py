from typing import Optional

from pydantic import BaseModel

SETTINGS_ID = "user"


class UserSettings(BaseModel):
    """Пользовательские настройки (одна запись на установку)

    Проверяется только тип полей: отрицательный интервал автосохранения
    принимается, потребители трактуют его как выключенное автосохранение.
    """
    anthropic_api_key: str = ""
    ai_model: str = "claude-sonnet-4-20250514"
    autosave_interval: float = 2  # секунды, 0 выключает
    default_font: str = "Playfair Display"
    default_font_size: int = 12
    spell_check: bool = True
    grammar_check: bool = True
    auto_correct: bool = True
    clipboard_auto_clear: bool = False
    dark_mode: bool = True
    language: str = "en-US"

    model_config = {"extra": "ignore"}

    @property
    def autosave_enabled(self) -> bool:
        return self.autosave_interval > 0

    def merged(self, **changes) -> "UserSettings":
        """Новая запись с применёнными изменениями (слияние до save())"""
        return UserSettings.model_validate({**self.model_dump(), **changes})


class UserSettingsUpdate(BaseModel):
    """Частичное обновление настроек"""
    anthropic_api_key: Optional[str] = None
    ai_model: Optional[str] = None
    autosave_interval: Optional[float] = None
    default_font: Optional[str] = None
    default_font_size: Optional[int] = None
    spell_check: Optional[bool] = None
    grammar_check: Optional[bool] = None
    auto_correct: Optional[bool] = None
    clipboard_auto_clear: Optional[bool] = None
    dark_mode: Optional[bool] = None
    language: Optional[str] = None
