from fastapi import APIRouter

from .capture import router as capture_router
from .health import router as health_router
from .workspace import router as workspace_router


api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(capture_router)
api_router.include_router(workspace_router)
