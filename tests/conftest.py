"""
Pytest configuration for office_core.
"""
import pytest
import pytest_asyncio

from office_core.core.config import AppSettings
from office_core.db.repositories import DocumentRepository, KeyedStore, SettingsRegistry
from office_core.domains.settings.schemas import UserSettings


def sqlite_url(path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture
def database_url(tmp_path):
    """URL временной базы SQLite."""
    return sqlite_url(tmp_path / "office.db")


@pytest_asyncio.fixture
async def store(database_url):
    """Инициализированное хранилище на временном файле."""
    keyed_store = KeyedStore.from_url(database_url)
    await keyed_store.initialize()
    yield keyed_store
    await keyed_store.dispose()


@pytest.fixture
def repository(store):
    return DocumentRepository(store)


@pytest.fixture
def registry(store):
    return SettingsRegistry(store)


@pytest.fixture
def manual_settings():
    """Настройки без автосохранения: записи только по явному save()."""
    return UserSettings(autosave_interval=0)


@pytest.fixture
def app_settings(database_url):
    return AppSettings(database_url=database_url, log_level="WARNING")


@pytest.fixture
def test_client(app_settings):
    """FastAPI test client с прогоном lifespan."""
    from fastapi.testclient import TestClient
    from office_core.main import create_app

    with TestClient(create_app(app_settings)) as client:
        yield client
