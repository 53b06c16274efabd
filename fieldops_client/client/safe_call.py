from datetime import datetime, UTC
from typing import Any, Awaitable, Callable, Optional
import logging

from .models import ApiResult

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Something went wrong. Please try again."

# (substring, code, user-facing message), first match wins
KNOWN_ERROR_PATTERNS = [
    ("duplicate key", "DUPLICATE_ENTRY", "This entry already exists."),
    ("foreign key", "INVALID_REFERENCE", "Referenced item not found."),
    ("permission", "PERMISSION_DENIED", "You do not have permission to perform this action."),
    ("not found", "NOT_FOUND", "The requested item was not found."),
    ("network", "NETWORK_ERROR", "Network connection failed. Please check your connection."),
]

INTERNAL_MARKERS = ("function", "syntax", "stack")

def handle_api_error(error: Any, context: Optional[str] = None) -> ApiResult:
    """Map any failure to an ApiResult without exposing internals."""
    raw_message = getattr(error, "message", None) or str(error) or None
    raw_code = getattr(error, "code", None)

    logger.error(
        f"[API Error] {context or 'Unknown'}: "
        f"message={raw_message or 'Unknown error'} code={raw_code} "
        f"timestamp={datetime.now(UTC).isoformat()}"
    )

    code = str(raw_code) if raw_code else "UNKNOWN_ERROR"
    message = GENERIC_MESSAGE

    if raw_message:
        lowered = raw_message.lower()
        for pattern, pattern_code, pattern_message in KNOWN_ERROR_PATTERNS:
            if pattern in lowered:
                return ApiResult(ok=False, code=pattern_code, message=pattern_message)

        user_friendly = not any(marker in lowered for marker in INTERNAL_MARKERS)
        if user_friendly and len(raw_message) < 100:
            message = raw_message

    return ApiResult(ok=False, code=code, message=message)

async def safe_call(
    call: Callable[[], Awaitable[Any]],
    context: Optional[str] = None
) -> ApiResult:
    """Await call() and wrap the outcome in an ApiResult."""
    try:
        data = await call()
    except Exception as e:
        return handle_api_error(e, context)
    return ApiResult(ok=True, data=data, message="Success")
