from fastapi import APIRouter

from .endpoints import notifications, health

api_router = APIRouter()

api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(health.router, prefix="/health", tags=["health"])
