from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    """Проверка состояния сервиса"""
    return {
        "status": "healthy",
        "storage": request.app.state.settings.storage_backend,
        "snapshots": request.app.state.settings.snapshot_mode
    }
