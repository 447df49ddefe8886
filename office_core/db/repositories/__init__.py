from office_core.db.repositories.keyed_store import KeyedStore, DOCUMENTS, SETTINGS
from office_core.db.repositories.document_repository import DocumentRepository
from office_core.db.repositories.settings_repository import SettingsRegistry

__all__ = [
    "KeyedStore",
    "DOCUMENTS",
    "SETTINGS",
    "DocumentRepository",
    "SettingsRegistry"
]
