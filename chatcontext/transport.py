"""
HTTP transport built on httpx.

Attaches auth, user-agent and custom headers, maps failures to
TransportError, and runs the stream decoder for streaming posts.
"""

import logging
import sys
from typing import Dict, Optional, TextIO

import httpx

from .config import ClientConfig
from .errors import TransportError
from .interfaces import Transport
from .stream_decoder import StreamDecoder, StreamDialect

logger = logging.getLogger(__name__)

CONTENT_TYPE_JSON = "application/json"


class HttpTransport(Transport):
    """
    Transport for an OpenAI-compatible service.

    The stream grammar is chosen from the endpoint being called: the
    configured responses path uses the event-tagged grammar, every other
    endpoint the legacy one.
    """

    def __init__(
        self,
        config: ClientConfig,
        client: Optional[httpx.AsyncClient] = None,
        output: Optional[TextIO] = None,
        log: Optional[logging.Logger] = None,
    ):
        """
        Initialize the transport.

        Args:
            config: Service configuration (auth, headers, timeout).
            client: Shared httpx client. One is created if omitted.
            output: Where decoded streams are written. Defaults to stdout.
            log: Logger for transport events.
        """
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout, connect=10),
        )
        self._output = output if output is not None else sys.stdout
        self._log = log or logger

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> 'HttpTransport':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def default_headers(self) -> Dict[str, str]:
        headers = dict(self.config.custom_headers or {})
        headers["Content-Type"] = CONTENT_TYPE_JSON
        if self.config.user_agent:
            headers["User-Agent"] = self.config.user_agent
        if self.config.api_key:
            headers[self.config.auth_header] = f"{self.config.auth_token_prefix}{self.config.api_key}"
        return headers

    def dialect_for(self, url: str) -> StreamDialect:
        path = httpx.URL(url).path
        if self.config.responses_path and path.endswith(self.config.responses_path):
            return StreamDialect.EVENT_TAGGED
        return StreamDialect.LEGACY

    async def get(self, url: str) -> bytes:
        headers = self.default_headers()
        headers.pop("Content-Type", None)
        return await self._send("GET", url, None, headers)

    async def post(self, url: str, body: bytes, stream: bool) -> bytes:
        headers = self.default_headers()
        if not stream:
            return await self._send("POST", url, body, headers)

        headers["Accept"] = "text/event-stream"
        decoder = StreamDecoder(self.dialect_for(url), log=self._log)
        try:
            async with self._client.stream("POST", url, content=body, headers=headers) as response:
                if response.is_error:
                    await response.aread()
                    raise self._status_error(response)
                text = await decoder.decode_async(response.aiter_lines(), self._output)
        except httpx.HTTPError as e:
            raise TransportError(f"failed to make request: {e}") from e
        return text.encode("utf-8")

    async def post_with_headers(self, url: str, body: bytes, headers: Dict[str, str]) -> bytes:
        merged = dict(self.config.custom_headers or {})
        merged.update(headers)
        return await self._send("POST", url, body, merged)

    async def _send(self, method: str, url: str, body: Optional[bytes], headers: Dict[str, str]) -> bytes:
        try:
            response = await self._client.request(method, url, content=body, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"failed to make request: {e}") from e

        if response.is_error:
            raise self._status_error(response)
        return response.content

    def _status_error(self, response: httpx.Response) -> TransportError:
        message = f"http status {response.status_code}"
        try:
            detail = response.json().get("error", {}).get("message")
        except (ValueError, AttributeError):
            detail = None
        if detail:
            message = f"{message}: {detail}"
        self._log.warning("Request to %s failed with %s", response.request.url, message)
        return TransportError(message, status_code=response.status_code)
