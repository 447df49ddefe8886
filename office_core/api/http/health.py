from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    """Проверка состояния"""
    store = request.app.state.store
    return {
        "status": "healthy" if store.is_ready else "degraded",
        "storage": "ready" if store.is_ready else "unavailable",
    }
