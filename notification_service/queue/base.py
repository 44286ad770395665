from abc import ABC, abstractmethod
from typing import Awaitable, Callable

# Delivers one attempt for a task id; raising means the delivery was not handled
DispatchHandler = Callable[[str], Awaitable[None]]


class QueueBackend(ABC):
    """Produce side of the delivery queue."""

    @abstractmethod
    async def enqueue_now(self, task_id: str) -> None:
        """Request a delivery attempt as soon as possible."""

    @abstractmethod
    async def enqueue_delayed(self, task_id: str, bucket: int) -> None:
        """Request a delivery attempt after the delay of ``bucket``."""

    async def close(self) -> None:
        """Release resources held by the backend."""
