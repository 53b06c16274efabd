"""Resilient request client for the field operations platform."""

from .client.api_client import ApiClient, get_api_client, get, post, put, delete
from .client.exceptions import ApiError, CircuitOpenError, RequestCancelledError
from .client.models import ApiResult, NormalizedError
from .client.safe_call import safe_call, handle_api_error
from .client.urls import build_function_url
from .core.circuit_breaker.store import BreakerStore, InMemoryBreakerStore, RedisBreakerStore

__version__ = "0.1.0"
