from typing import Dict, Mapping, Optional
import logging

from .provider import AuthProvider

logger = logging.getLogger(__name__)

async def build_auth_headers(
    provider: Optional[AuthProvider],
    api_key: str,
    extra: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """Build request headers, fetching a fresh session token.

    Failing to reach the auth provider never fails the request: the headers
    are returned without ``authorization``. Entries in ``extra`` are merged
    last and replace defaults regardless of case.
    """
    headers: Dict[str, str] = {
        "content-type": "application/json",
        "apikey": api_key,
    }

    if provider is not None:
        try:
            token = await provider.get_session_token()
            if token:
                headers["authorization"] = f"Bearer {token}"
        except Exception as e:
            logger.warning(f"Failed to get auth session: {e}")

    for name, value in (extra or {}).items():
        headers[name.lower()] = value

    return headers
