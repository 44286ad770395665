from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from notification_service.core.database import get_async_session
from notification_service.core.redis_client import redis_client
from notification_service.core.config import settings
from notification_service.models.enums import TaskStatus
from notification_service.queue.mock_backend import MockQueueBackend
from notification_service.repositories import NotificationTaskRepository

router = APIRouter()


async def _dispatch_queue_stats() -> dict:
    queue_name = settings.DISPATCH_QUEUE
    active = await redis_client.get_queue_length(queue_name)
    processing = await redis_client.get_queue_length(f"{queue_name}:processing")
    delayed = await redis_client.get_delayed_length(queue_name)
    failed = await redis_client.get_queue_length(f"{queue_name}:failed")
    return {
        "active_depth": active,
        "processing_depth": processing,
        "delayed_depth": delayed,
        "failed_depth": failed,
        "total_depth": active + processing + delayed + failed
    }


@router.get("/")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "notification-service",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "mq_mode": settings.MQ_MODE
    }


@router.get("/detailed")
async def detailed_health_check(
    session: AsyncSession = Depends(get_async_session)
):
    """Detailed health check including dependencies."""
    health_status = {
        "status": "healthy",
        "service": "notification-service",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "checks": {}
    }

    # Database check
    try:
        await session.execute(text("SELECT 1"))
        task_repo = NotificationTaskRepository(session)
        counts = {}
        for status in TaskStatus:
            counts[status.value] = await task_repo.count({"status": status.value})
        health_status["checks"]["database"] = {
            "status": "healthy",
            "message": "Database connection OK",
            "tasks": counts
        }
    except Exception as e:
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    # Redis check, only a dependency when the broker is in use
    if settings.MQ_MODE == "redis":
        try:
            if not redis_client.client:
                await redis_client.connect()
            await redis_client.client.ping()
            health_status["checks"]["redis"] = {
                "status": "healthy",
                "message": "Redis connection OK",
                "dispatch_queue": await _dispatch_queue_stats()
            }
        except Exception as e:
            health_status["checks"]["redis"] = {"status": "unhealthy", "error": str(e)}
            health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status


@router.get("/queues")
async def get_queue_status(request: Request):
    """Dispatch queue depths for the active queue backend."""
    backend = request.app.state.queue_backend
    if isinstance(backend, MockQueueBackend):
        return {
            "status": "healthy",
            "mq_mode": "mock",
            "pending_deliveries": backend.pending_count
        }

    try:
        return {
            "status": "healthy",
            "mq_mode": settings.MQ_MODE,
            "queues": {settings.DISPATCH_QUEUE: await _dispatch_queue_stats()}
        }
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Queue status check failed: {str(e)}")
