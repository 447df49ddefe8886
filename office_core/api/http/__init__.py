from office_core.api.http.health import router as health_router
from office_core.api.http.documents import router as documents_router
from office_core.api.http.session import router as session_router
from office_core.api.http.settings import router as settings_router
from office_core.api.http.assistant import router as assistant_router

__all__ = [
    "health_router",
    "documents_router",
    "session_router",
    "settings_router",
    "assistant_router"
]
