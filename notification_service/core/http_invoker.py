import asyncio
import time
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from .config import settings
from .logging import get_logger

logger = get_logger(__name__)

BODY_METHODS = ("POST", "PUT")


@dataclass
class InvocationOutcome:
    """Result of a single outbound call. ``status_code`` 0 means no response."""

    status_code: int
    body: Optional[str] = None
    cost_ms: int = 0
    error_message: Optional[str] = None
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600

    @property
    def is_timeout(self) -> bool:
        return self.status_code == 0 and self.timed_out

    @property
    def is_network_error(self) -> bool:
        return self.status_code == 0 and not self.timed_out


class HttpInvoker:
    """Performs exactly one outbound HTTP call and reports what happened."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the invoker.

        Args:
            transport: Optional httpx transport, used to route calls through a
                custom or mock transport instead of the network.
        """
        self.transport = transport
        self.user_agent = f"{settings.APP_NAME}/{settings.VERSION}"

    async def call(
        self,
        url: str,
        method: str,
        headers: Optional[Dict[str, str]],
        body: Optional[str],
        timeout_ms: int
    ) -> InvocationOutcome:
        """
        Send one request bounded by ``timeout_ms``.

        Any HTTP response, 4xx and 5xx included, is returned verbatim; only
        timeouts and network failures produce a status code of 0. No retries
        happen here.

        Args:
            url: Target URL
            method: HTTP method (GET/POST/PUT/DELETE)
            headers: Request headers
            body: Serialized request body, sent for POST and PUT only
            timeout_ms: Overall deadline for the call in milliseconds

        Returns:
            InvocationOutcome describing the response or failure
        """
        method = method.upper()
        request_headers = {"User-Agent": self.user_agent}
        request_headers.update(headers or {})
        if not any(name.lower() == "content-type" for name in request_headers):
            request_headers["Content-Type"] = "application/json"

        content = body.encode("utf-8") if body and method in BODY_METHODS else None
        timeout_seconds = timeout_ms / 1000.0

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=timeout_seconds,
                transport=self.transport,
                follow_redirects=True
            ) as client:
                # httpx timeouts apply per phase; wait_for bounds the whole call
                response = await asyncio.wait_for(
                    client.request(method, url, headers=request_headers, content=content),
                    timeout=timeout_seconds
                )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            cost_ms = self._elapsed_ms(start)
            logger.warning(
                "Outbound call timed out",
                url=url,
                method=method,
                timeout_ms=timeout_ms,
                cost_ms=cost_ms
            )
            return InvocationOutcome(
                status_code=0,
                cost_ms=cost_ms,
                error_message=f"Timeout after {timeout_ms}ms calling {method} {url}",
                timed_out=True
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            cost_ms = self._elapsed_ms(start)
            logger.error(
                "Outbound call failed",
                url=url,
                method=method,
                cost_ms=cost_ms,
                error=str(e) or e.__class__.__name__
            )
            return InvocationOutcome(
                status_code=0,
                cost_ms=cost_ms,
                error_message=f"{e.__class__.__name__}: {e}" if str(e) else e.__class__.__name__
            )
        except Exception as e:
            # Request could not be built or sent, e.g. a non-ASCII header value
            cost_ms = self._elapsed_ms(start)
            logger.error(
                "Outbound call could not be sent",
                url=url,
                method=method,
                cost_ms=cost_ms,
                error=f"{e.__class__.__name__}: {e}"
            )
            return InvocationOutcome(
                status_code=0,
                cost_ms=cost_ms,
                error_message=f"{e.__class__.__name__}: {e}"
            )

        cost_ms = self._elapsed_ms(start)
        outcome = InvocationOutcome(
            status_code=response.status_code,
            body=response.text,
            cost_ms=cost_ms
        )

        if outcome.success:
            logger.info(
                "Outbound call succeeded",
                url=url,
                method=method,
                status_code=response.status_code,
                cost_ms=cost_ms
            )
        else:
            outcome.error_message = (
                f"HTTP {response.status_code} {response.reason_phrase} from {method} {url}: {response.text}"
            )
            logger.warning(
                "Outbound call returned error status",
                url=url,
                method=method,
                status_code=response.status_code,
                cost_ms=cost_ms,
                response_text=response.text[:500]
            )

        return outcome

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
