"""
Request/response tracing.

Renders each call as a reproducible cURL command at DEBUG level on the logger
the caller passes in. Nothing is printed unless that logger is enabled for
DEBUG.
"""

import logging
from typing import Dict, Optional


def trace_request(
    log: logging.Logger,
    endpoint: str,
    body: Optional[bytes],
    headers: Optional[Dict[str, str]] = None,
    service_name: str = "openai",
) -> None:
    """
    Log a cURL equivalent of a request.

    Without explicit headers the auth header is rendered as a reference to
    the ``<SERVICE>_API_KEY`` environment variable so keys never reach logs.
    """
    if not log.isEnabledFor(logging.DEBUG):
        return

    method = "GET" if body is None else "POST"
    lines = [f"curl --location --insecure --request {method} '{endpoint}' \\"]

    if headers:
        for key, value in headers.items():
            if "authorization" in key.lower() or "key" in key.lower():
                value = "***"
            lines.append(f"  --header '{key}: {value}' \\")
    else:
        lines.append(f'  --header "Authorization: Bearer ${{{service_name.upper()}_API_KEY}}" \\')
        lines.append("  --header 'Content-Type: application/json' \\")

    if body is not None:
        text = body.decode("utf-8", errors="replace").replace("'", "'\"'\"'")
        lines.append(f"  --data-raw '{text}'")

    log.debug("Generated cURL command:\n%s", "\n".join(lines))


def trace_response(log: logging.Logger, raw: Optional[bytes]) -> None:
    if not log.isEnabledFor(logging.DEBUG):
        return
    text = raw.decode("utf-8", errors="replace") if raw is not None else "<empty>"
    log.debug("Response:\n%s", text)
