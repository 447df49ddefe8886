from office_core.domains.settings.schemas import SETTINGS_ID, UserSettings, UserSettingsUpdate

__all__ = ["SETTINGS_ID", "UserSettings", "UserSettingsUpdate"]
