from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
import logging

from notification_service.core.config import settings
from notification_service.core.database import AsyncSessionLocal, db_manager
from notification_service.core.exceptions import NotificationError
from notification_service.core.logging import setup_logging
from notification_service.core.redis_client import redis_client
from notification_service.models.enums import ErrorCode
from notification_service.queue import build_queue_backend
from notification_service.schemas.notification import ErrorResponse
from notification_service.api.v1.router import api_router


# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    # Startup
    try:
        if settings.DATABASE_AUTO_CREATE:
            await db_manager.create_tables()
        if settings.MQ_MODE == "redis":
            await redis_client.connect()
        app.state.queue_backend = build_queue_backend(settings, AsyncSessionLocal)
        logger.info(f"{settings.APP_NAME} startup completed (mq_mode={settings.MQ_MODE})")
    except Exception as e:
        logger.error(f"{settings.APP_NAME} startup failed: {e}")
        raise

    yield

    # Shutdown
    try:
        await app.state.queue_backend.close()
        await redis_client.disconnect()
        await db_manager.close_connections()
        logger.info(f"{settings.APP_NAME} shutdown completed")
    except Exception as e:
        logger.error(f"{settings.APP_NAME} shutdown failed: {e}")


app = FastAPI(
    title=settings.APP_NAME,
    description="""
    **Notification Service**

    Accepts HTTP callbacks for third parties and delivers them asynchronously
    with bounded retries and exponential backoff.

    - `POST /v1/notifications` queues a callback and returns its notification id
    - `GET /v1/notifications/{id}` reports delivery status, retries and last error
    - `event_id` makes creation idempotent while a task is in progress
    """,
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix="/v1")


def error_response(status_code: int, error: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@app.get("/")
async def root():
    """Root endpoint with service information."""
    return {
        "service": settings.APP_NAME,
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "status": "running",
        "docs_url": "/docs",
        "health_check": "/v1/health",
        "mq_mode": settings.MQ_MODE
    }


@app.exception_handler(NotificationError)
async def notification_exception_handler(request: Request, exc: NotificationError):
    return error_response(exc.status_code, exc.error_code.value, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return error_response(400, ErrorCode.VALIDATION_ERROR.value, "Request validation failed", details)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error: {exc}", exc_info=True)
    return error_response(503, ErrorCode.DATABASE_ERROR.value, "Database unavailable")


@app.exception_handler(RedisError)
async def queue_exception_handler(request: Request, exc: RedisError):
    logger.error(f"Queue error: {exc}", exc_info=True)
    return error_response(503, ErrorCode.MQ_ERROR.value, "Queue unavailable")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTP exception handler."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.detail))
    if exc.status_code == 404:
        error = ErrorCode.RESOURCE_NOT_FOUND
    elif exc.status_code >= 500:
        error = ErrorCode.INTERNAL_ERROR
    else:
        error = ErrorCode.VALIDATION_ERROR
    return error_response(exc.status_code, error.value, str(exc.detail))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return error_response(
        500,
        ErrorCode.INTERNAL_ERROR.value,
        str(exc) if settings.DEBUG else "An unexpected error occurred"
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "notification_service.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
