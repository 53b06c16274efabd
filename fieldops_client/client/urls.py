from typing import Mapping, Optional, Union

import httpx

from ..config import get_settings

def build_function_url(
    function_name: str,
    params: Optional[Mapping[str, Union[str, int, float]]] = None,
    base_url: Optional[str] = None
) -> str:
    """Build the URL of an edge function, with params on the query string."""
    base = (base_url or get_settings().FUNCTIONS_BASE_URL).rstrip('/')
    url = httpx.URL(f"{base}/{function_name.lstrip('/')}")

    for key, value in (params or {}).items():
        url = url.copy_set_param(key, str(value))

    return str(url)
