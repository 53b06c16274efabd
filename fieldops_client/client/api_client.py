from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional
import asyncio
import json
import logging
import time

import httpx

from ..auth.headers import build_auth_headers
from ..auth.provider import AuthProvider
from ..config import Settings, get_settings
from ..core.circuit_breaker.breaker import CircuitBreaker
from ..core.circuit_breaker.models import BreakerConfig
from ..core.circuit_breaker.store import BreakerStore, create_breaker_store
from ..core.metrics import MetricsManager
from .exceptions import ApiError, CircuitOpenError, RequestCancelledError
from .models import NormalizedError

logger = logging.getLogger(__name__)

# Local failures that are retried like 5xx responses
NETWORK_ERRORS = (httpx.HTTPError, httpx.InvalidURL, OSError)

class ApiClient:
    """HTTP client with auth headers, timeouts, retries and a per-path breaker.

    Every failure is raised as ``ApiError`` carrying a ``NormalizedError``;
    transport exceptions never reach the caller.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        auth_provider: Optional[AuthProvider] = None,
        breaker_store: Optional[BreakerStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time
    ):
        self.settings = settings or get_settings()
        self.auth_provider = auth_provider
        self.breaker = CircuitBreaker(
            store=breaker_store or create_breaker_store(self.settings, clock=clock),
            config=BreakerConfig(
                failure_threshold=self.settings.FAILURE_THRESHOLD,
                failure_window=self.settings.FAILURE_WINDOW_SECONDS
            ),
            clock=clock
        )
        self.metrics = MetricsManager()
        self._sleep = sleep
        self._owns_http_client = http_client is None
        # Deadlines are enforced per attempt, not by httpx
        self._http_client = http_client or httpx.AsyncClient(
            base_url=self.settings.BASE_URL if base_url is None else base_url,
            timeout=None,
            follow_redirects=True
        )

    async def get(self, url: str, **kwargs) -> Any:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, body: Any = None, **kwargs) -> Any:
        return await self.request("POST", url, body, **kwargs)

    async def put(self, url: str, body: Any = None, **kwargs) -> Any:
        return await self.request("PUT", url, body, **kwargs)

    async def delete(self, url: str, **kwargs) -> Any:
        return await self.request("DELETE", url, **kwargs)

    async def request(
        self,
        method: str,
        url: str,
        body: Any = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        retries: Optional[int] = None,
        timeout_ms: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
        **transport_options
    ) -> Any:
        """
        Perform a request and return the decoded response body.

        Args:
            method: HTTP method
            url: Absolute URL, or a path relative to the client's base URL
            body: JSON-serialisable payload, sent when not None
            headers: Header overrides, merged over the defaults
            retries: Retries after the first attempt
            timeout_ms: Deadline for each individual attempt
            cancel_event: Setting it aborts the call and skips remaining retries
            **transport_options: Passed through to httpx unchanged

        Returns:
            Parsed JSON when the response declares JSON, otherwise text

        Raises:
            ApiError: On any failure, including CircuitOpenError and
                RequestCancelledError
        """
        retries = self.settings.DEFAULT_RETRIES if retries is None else retries
        timeout_ms = self.settings.DEFAULT_TIMEOUT_MS if timeout_ms is None else timeout_ms

        request_headers = await build_auth_headers(
            self.auth_provider,
            self.settings.API_KEY,
            headers
        )
        if body is not None:
            transport_options["content"] = json.dumps(body)

        start_time = time.monotonic()
        outcome = "error"
        try:
            result = await self._execute(
                method,
                url,
                request_headers,
                max(retries, 0),
                timeout_ms,
                cancel_event,
                transport_options
            )
            outcome = "success"
            return result
        except CircuitOpenError:
            outcome = "circuit_open"
            raise
        except RequestCancelledError:
            outcome = "cancelled"
            raise
        finally:
            self.metrics.record_request(method, outcome, time.monotonic() - start_time)

    async def _execute(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        retries: int,
        timeout_ms: int,
        cancel_event: Optional[asyncio.Event],
        options: Dict[str, Any]
    ) -> Any:
        key = self.breaker.key_for(url)

        for attempt in range(retries + 1):
            remaining = retries - attempt

            if cancel_event is not None and cancel_event.is_set():
                raise RequestCancelledError(url)

            # Checked before every attempt, so a call whose path trips while
            # it is retrying stops at its next attempt.
            if await self.breaker.is_open(key):
                self.metrics.record_circuit_open(method)
                logger.warning(f"Circuit open for {key}, rejecting {method} {url}")
                raise CircuitOpenError(url)

            try:
                response = await self._send(method, url, headers, timeout_ms, cancel_event, options)
            except NETWORK_ERRORS as e:
                if remaining > 0:
                    logger.info(
                        f"{method} {url} failed ({type(e).__name__}: {e}), "
                        f"retrying ({remaining} left)"
                    )
                    self.metrics.record_retry(method, type(e).__name__)
                    await self._backoff(attempt, url, cancel_event)
                    continue

                await self.breaker.record_failure(key)
                raise ApiError(self._network_error(url, e)) from e

            body = self._decode_body(response)
            if response.is_success:
                return body

            if response.status_code >= 500 and remaining > 0:
                logger.info(
                    f"{method} {url} returned {response.status_code}, "
                    f"retrying ({remaining} left)"
                )
                self.metrics.record_retry(method, str(response.status_code))
                await self._backoff(attempt, url, cancel_event)
                continue

            await self.breaker.record_failure(key)
            raise ApiError(self._response_error(url, response, body))

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        timeout_ms: int,
        cancel_event: Optional[asyncio.Event],
        options: Dict[str, Any]
    ) -> httpx.Response:
        """Run one attempt under its own deadline."""
        call = self._http_client.request(method, url, headers=headers, **options)
        timeout = timeout_ms / 1000

        if cancel_event is None:
            try:
                return await asyncio.wait_for(call, timeout)
            except asyncio.TimeoutError:
                raise TimeoutError(f"Request timed out after {timeout_ms}ms") from None

        request_task = asyncio.ensure_future(call)
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {request_task, cancel_task},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            await _cancel_pending((request_task, cancel_task))

        if cancel_task in done:
            raise RequestCancelledError(url)
        if request_task in done:
            return request_task.result()
        raise TimeoutError(f"Request timed out after {timeout_ms}ms")

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt."""
        schedule = self.settings.BACKOFF_SCHEDULE_MS
        return schedule[min(attempt, len(schedule) - 1)] / 1000

    async def _backoff(
        self,
        attempt: int,
        url: str,
        cancel_event: Optional[asyncio.Event]
    ) -> None:
        delay = self.backoff_delay(attempt)
        if cancel_event is None:
            await self._sleep(delay)
            return

        sleep_task = asyncio.ensure_future(self._sleep(delay))
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {sleep_task, cancel_task},
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            await _cancel_pending((sleep_task, cancel_task))

        if cancel_task in done:
            raise RequestCancelledError(url)

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            try:
                return response.json()
            except ValueError:
                return {}
        return response.text

    def _response_error(
        self,
        url: str,
        response: httpx.Response,
        body: Any
    ) -> NormalizedError:
        code = None
        message = None
        if isinstance(body, dict):
            code = body.get("code")
            message = body.get("message")

        if not message:
            if isinstance(body, (dict, list)):
                message = json.dumps(body) if body else ""
            else:
                message = str(body)
        if not message:
            message = response.reason_phrase or f"HTTP {response.status_code}"

        return NormalizedError(
            status=response.status_code,
            code=str(code) if code is not None else None,
            message=str(message),
            request_id=response.headers.get(self.settings.REQUEST_ID_HEADER),
            details=body,
            url=url
        )

    @staticmethod
    def _network_error(url: str, error: Exception) -> NormalizedError:
        return NormalizedError(
            status=0,
            code=type(error).__name__,
            message=str(error) or "Network error",
            details=error,
            url=url
        )

    async def close(self) -> None:
        """Cleanup resources."""
        if self._owns_http_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

async def _cancel_pending(tasks: Iterable[asyncio.Future]) -> None:
    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

_default_client: Optional[ApiClient] = None

def get_api_client() -> ApiClient:
    """Process-wide client used by the module-level helpers."""
    global _default_client
    if _default_client is None:
        _default_client = ApiClient()
    return _default_client

async def get(url: str, **kwargs) -> Any:
    return await get_api_client().get(url, **kwargs)

async def post(url: str, body: Any = None, **kwargs) -> Any:
    return await get_api_client().post(url, body, **kwargs)

async def put(url: str, body: Any = None, **kwargs) -> Any:
    return await get_api_client().put(url, body, **kwargs)

async def delete(url: str, **kwargs) -> Any:
    return await get_api_client().delete(url, **kwargs)
