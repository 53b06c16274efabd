from typing import Any, Dict, List, Literal, Optional
import asyncio
import logging
import time

from pydantic import BaseModel

from .client.api_client import ApiClient
from .client.exceptions import ApiError
from .client.urls import build_function_url

logger = logging.getLogger(__name__)

class FunctionHealth(BaseModel):
    """Outcome of probing one edge function."""
    function: str
    status: Literal["success", "error"]
    response_time_ms: Optional[float] = None
    request_id: Optional[str] = None
    error: Optional[str] = None

class FunctionHealthChecker:
    """Probes the platform's core edge functions through the request client."""

    def __init__(
        self,
        client: ApiClient,
        functions: Optional[List[str]] = None,
        base_url: Optional[str] = None
    ):
        self.client = client
        self.functions = functions if functions is not None else list(
            client.settings.HEALTH_CHECK_FUNCTIONS
        )
        self.base_url = base_url or client.settings.FUNCTIONS_BASE_URL

    async def _probe(self, function_name: str) -> FunctionHealth:
        url = build_function_url(function_name, {"test": "1"}, base_url=self.base_url)
        start_time = time.monotonic()
        try:
            response = await self.client.get(url)
        except ApiError as e:
            return FunctionHealth(
                function=function_name,
                status="error",
                response_time_ms=(time.monotonic() - start_time) * 1000,
                request_id=e.request_id,
                error=e.message or "Health check failed"
            )

        request_id = response.get("requestId") if isinstance(response, dict) else None
        return FunctionHealth(
            function=function_name,
            status="success",
            response_time_ms=(time.monotonic() - start_time) * 1000,
            request_id=request_id
        )

    async def run(self, functions: Optional[List[str]] = None) -> List[FunctionHealth]:
        """Probe every function concurrently. Results keep input order."""
        names = functions if functions is not None else self.functions
        outcomes = await asyncio.gather(
            *(self._probe(name) for name in names),
            return_exceptions=True
        )

        results = []
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Health probe for {name} crashed: {outcome}")
                outcome = FunctionHealth(function=name, status="error", error="Probe failed")
            results.append(outcome)

        healthy = sum(1 for r in results if r.status == "success")
        logger.info(f"Health check complete: {healthy}/{len(results)} functions healthy")
        return results

    @staticmethod
    def summary(results: List[FunctionHealth]) -> Dict[str, Any]:
        healthy = sum(1 for r in results if r.status == "success")
        return {
            "total": len(results),
            "healthy": healthy,
            "status": "healthy" if healthy == len(results) else "degraded"
        }
