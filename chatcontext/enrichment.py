"""
Context enrichment through a third-party actor (Apify).

Only the request/response contract lives here: building the call and
flattening the returned dataset into a function turn.
"""

import json
import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .errors import MissingAPIKeyError, UnsupportedProviderError
from .request_builder import encode_body

APIFY_PROVIDER = "apify"
APIFY_URL = "https://api.apify.com/v2/acts/"
APIFY_PATH = "/run-sync-get-dataset-items"
APIFY_PROXY_CONFIG = "proxyConfiguration"


@dataclass
class EnrichmentRequest:
    """
    A call to an enrichment provider.

    Attributes:
        provider: Provider name, case-insensitive. Only 'apify' is supported.
        function: Actor identifier, e.g. 'apify~website-content-crawler'.
        params: Actor input.
    """
    provider: str
    function: str
    params: Dict[str, Any] = field(default_factory=dict)


def build_enrichment_request(request: EnrichmentRequest, api_key: str) -> Tuple[str, Dict[str, str], bytes]:
    """
    Endpoint, headers and body for an enrichment call.

    Raises:
        UnsupportedProviderError: If the provider is not Apify.
        MissingAPIKeyError: If ``api_key`` is empty.
    """
    provider = request.provider.lower()
    if provider != APIFY_PROVIDER:
        raise UnsupportedProviderError()
    if not api_key:
        raise MissingAPIKeyError(provider)

    params = dict(request.params)
    params[APIFY_PROXY_CONFIG] = {"useApifyProxy": True}

    endpoint = APIFY_URL + request.function + APIFY_PATH
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    }
    return endpoint, headers, encode_body(params)


def function_name(function: str) -> str:
    """Function turn name for an actor id ('~' is not allowed in names)."""
    return function.replace("~", "-")


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


def _format_label(key: str) -> str:
    """'page_count' -> 'Page Count'; letters after digits stay lower case."""
    return string.capwords(key.replace("_", " "))


def _format_key_values(obj: Dict[str, Any]) -> List[str]:
    return [f"{_format_label(key)}: {_format_value(value)}" for key, value in obj.items()]


def format_enrichment_response(raw: bytes, function: str) -> str:
    """
    Flatten an actor result into ``[MCP: <function>]`` plus sorted
    ``Key: value`` lines. Lists contribute their first object only.
    """
    try:
        result = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
        return f"[MCP: {function}] (failed to decode response)"

    if isinstance(result, list):
        if not result:
            return f"[MCP: {function}] (no data returned)"
        if not isinstance(result[0], dict):
            return f"[MCP: {function}] (unexpected response format)"
        lines = _format_key_values(result[0])
    elif isinstance(result, dict):
        lines = _format_key_values(result)
    else:
        return f"[MCP: {function}] (unexpected response format)"

    return f"[MCP: {function}]\n" + "\n".join(sorted(lines))
