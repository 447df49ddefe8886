from fastapi import APIRouter

from office_core.api.http import (
    assistant_router, documents_router, health_router, session_router, settings_router
)

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(documents_router)
api_router.include_router(session_router)
api_router.include_router(settings_router)
api_router.include_router(assistant_router)
