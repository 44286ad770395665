from .base import QueueBackend, DispatchHandler
from .redis_backend import RedisQueueBackend, RedisQueueConsumer
from .mock_backend import MockQueueBackend
from .factory import build_queue_backend

__all__ = [
    "QueueBackend",
    "DispatchHandler",
    "RedisQueueBackend",
    "RedisQueueConsumer",
    "MockQueueBackend",
    "build_queue_backend",
]
