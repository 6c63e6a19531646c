"""
Chat client: ties the conversation window, request assembly, transport and
response decoding together for one conversation thread.
"""

import base64
import binascii
import json
import logging
import os
import secrets
import string
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from .capabilities import CapabilityFlags, get_capabilities
from .config import ClientConfig
from .enrichment import (
    EnrichmentRequest,
    build_enrichment_request,
    format_enrichment_response,
    function_name,
)
from .errors import DecodeError, HistoryTrackingError, MediaError, SemanticError, TransportError
from .interfaces import HistoryStore, Transport
from .media import Attachment, read_file, sniff_image_mime
from .models import Turn, USER_ROLE, ASSISTANT_ROLE
from .request_builder import RequestAssembler, SamplingParams, encode_body
from .response_decoder import decode_response, load_envelope
from .tokenizer_interfaces import Tokenizer, MetricsCallback
from .tracing import trace_request, trace_response
from .window import Clock, ConversationWindow

logger = logging.getLogger(__name__)

INTERACTIVE_THREAD_PREFIX = "int_"
THREAD_SLUG_LENGTH = 4
GPT_PREFIX = "gpt"
O1_PREFIX = "o1"

_SLUG_ALPHABET = string.ascii_lowercase + string.digits


def generate_thread_slug(prefix: str = INTERACTIVE_THREAD_PREFIX) -> str:
    """``prefix`` followed by 4 random lowercase alphanumerics, e.g. 'int_k3x9'."""
    return prefix + "".join(secrets.choice(_SLUG_ALPHABET) for _ in range(THREAD_SLUG_LENGTH))


class ChatClient:
    """
    Client for one conversation thread of an OpenAI-compatible service.

    Each call runs a single request/response cycle: the user turn is
    appended (and the window truncated), the body is assembled for the
    model's wire shape, sent, decoded, and the reply is appended and
    persisted. Not safe for concurrent calls on the same instance.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Transport,
        history_store: HistoryStore,
        interactive: bool = False,
        tokenizer: Optional[Tokenizer] = None,
        clock: Optional[Clock] = None,
        metrics_callback: Optional[MetricsCallback] = None,
        log: Optional[logging.Logger] = None,
    ):
        """
        Initialize the client and select its thread.

        Args:
            config: Immutable client configuration.
            transport: HTTP collaborator.
            history_store: Backing store for the conversation.
            interactive: In interactive mode with ``auto_create_new_thread``
                a fresh thread is started instead of the configured one.
            tokenizer: Cost estimator for truncation.
            clock: Timestamp source for new turns.
            metrics_callback: Receives truncation metrics.
            log: Logger for the client and its window; request tracing is
                emitted on it at DEBUG.
        """
        self.config = config
        self.transport = transport
        self.history_store = history_store
        self._log = log or logger
        self.window = ConversationWindow(
            config.context_window,
            tokenizer=tokenizer,
            clock=clock,
            metrics_callback=metrics_callback,
            log=self._log,
        )

        if interactive and config.auto_create_new_thread:
            self.thread = generate_thread_slug()
        else:
            self.thread = config.thread
        history_store.set_thread(self.thread)

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def capabilities(self) -> CapabilityFlags:
        return get_capabilities(self.config.model)

    @property
    def history(self) -> List[Turn]:
        return self.window.turns

    def with_context_window(self, window: int) -> 'ChatClient':
        self.config = self.config.with_context_window(window)
        self.window.context_window = window
        return self

    def with_service_url(self, url: str) -> 'ChatClient':
        self.config = self.config.with_service_url(url)
        return self

    def chat_endpoint(self) -> str:
        if self.capabilities.uses_alternate_api:
            return self.config.endpoint(self.config.responses_path)
        return self.config.endpoint(self.config.completions_path)

    def _assembler(self) -> RequestAssembler:
        return RequestAssembler(SamplingParams.from_config(self.config), log=self._log)

    # =========================================================================
    # History
    # =========================================================================

    async def init_history(self) -> None:
        """Load the thread once; a failed read starts from a fresh anchor."""
        if self.window.initialized:
            return

        persisted: Optional[List[Turn]] = None
        if not self.config.omit_history:
            try:
                persisted = await self.history_store.read()
            except Exception as e:
                self._log.warning("Could not read history for thread %s: %s", self.thread, e)

        self.window.initialize(persisted, self.config.role)

    async def _persist_best_effort(self) -> None:
        if self.config.omit_history:
            return
        try:
            await self.history_store.write(self.window.turns)
        except Exception as e:
            self._log.warning("Could not persist history for thread %s: %s", self.thread, e)

    async def _prepare_query(self, text: str) -> None:
        await self.init_history()
        self.window.append_user(text)

    async def _update_history(self, response: str) -> None:
        self.window.append_assistant(response)
        await self._persist_best_effort()

    async def provide_context(self, text: str) -> None:
        """Add ``text`` to the conversation as user turns of up to 100 words."""
        await self.init_history()
        self.window.provide_context(text)

    # =========================================================================
    # Chat
    # =========================================================================

    async def query(self, text: str, attachment: Optional[Attachment] = None) -> Tuple[str, int]:
        """
        Send ``text`` and wait for the full reply.

        Args:
            text: User message.
            attachment: Optional image or audio sent with this request only.

        Returns:
            (reply text, total tokens used)

        Raises:
            TransportError: The call failed.
            EmptyResponseError, DecodeError, SemanticError: The reply could not
                be decoded.
        """
        await self._prepare_query(text)

        body = self._assembler().build(self.window.turns, stream=False, attachment=attachment)
        endpoint = self.chat_endpoint()

        trace_request(self._log, endpoint, body, service_name=self.config.name)
        raw = await self.transport.post(endpoint, body, False)
        trace_response(self._log, raw)

        decoded = decode_response(raw, self.capabilities.uses_alternate_api)
        await self._update_history(decoded.text)

        return decoded.text, decoded.tokens_used

    async def stream(self, text: str, attachment: Optional[Attachment] = None) -> str:
        """
        Send ``text`` and let the transport decode the event stream.

        The transport writes the flattened reply (or a single error line) to
        its output; the same text without the final newline is recorded as
        the assistant turn and returned.

        Raises:
            ValueError: The model does not support streaming.
            TransportError: The call failed.
        """
        if not self.capabilities.supports_streaming:
            raise ValueError(f"model {self.config.model} does not support streaming")

        await self._prepare_query(text)

        body = self._assembler().build(self.window.turns, stream=True, attachment=attachment)
        endpoint = self.chat_endpoint()

        trace_request(self._log, endpoint, body, service_name=self.config.name)
        result = await self.transport.post(endpoint, body, True)

        reply = result.decode("utf-8")
        if reply.endswith("\n"):
            reply = reply[:-1]

        await self._update_history(reply)
        return reply

    async def list_models(self) -> List[str]:
        """
        Models whose id starts with 'gpt' or 'o1', sorted, the configured one
        marked as current.
        """
        endpoint = self.config.endpoint(self.config.models_path)

        trace_request(self._log, endpoint, None, service_name=self.config.name)
        raw = await self.transport.get(endpoint)
        trace_response(self._log, raw)

        envelope = load_envelope(raw)
        data = envelope.get("data")
        if data is None:
            data = []
        elif not isinstance(data, list):
            raise DecodeError("failed to decode response: 'data' is not a list")
        ids = sorted(
            item["id"] for item in data
            if isinstance(item, dict) and isinstance(item.get("id"), str)
        )

        result = []
        for model_id in ids:
            if not (model_id.startswith(GPT_PREFIX) or model_id.startswith(O1_PREFIX)):
                continue
            if model_id == self.config.model:
                result.append(f"* {model_id} (current)")
            else:
                result.append(f"- {model_id}")
        return result

    # =========================================================================
    # Enrichment
    # =========================================================================

    async def inject_enrichment(self, request: EnrichmentRequest) -> None:
        """
        Call the enrichment provider and add its result as a function turn.

        Unlike replies, a failure to persist the enriched history is raised.

        Raises:
            HistoryTrackingError: History is disabled.
            UnsupportedProviderError, MissingAPIKeyError: Bad request.
            TransportError: The call failed.
        """
        if self.config.omit_history:
            raise HistoryTrackingError()

        endpoint, headers, body = build_enrichment_request(request, self.config.apify_api_key)

        trace_request(self._log, endpoint, body, headers, service_name=self.config.name)
        raw = await self.transport.post_with_headers(endpoint, body, headers)
        trace_response(self._log, raw)

        formatted = format_enrichment_response(raw, request.function)

        await self.init_history()
        self.window.append_function(function_name(request.function), formatted)

        await self.history_store.write(self.window.turns)

    # =========================================================================
    # Audio and Images
    # =========================================================================

    def _auth_headers(self, content_type: str) -> Dict[str, str]:
        return {
            "Content-Type": content_type,
            self.config.auth_header: f"{self.config.auth_token_prefix}{self.config.api_key}",
        }

    async def synthesize_speech(self, text: str, output_path: str) -> None:
        """Convert ``text`` to speech; the output extension picks the audio format."""
        request = {
            "model": self.config.model,
            "voice": self.config.voice,
            "input": text,
            "response_format": os.path.splitext(output_path)[1].lstrip("."),
        }
        await self._post_and_write_binary(
            self.config.endpoint(self.config.speech_path), request, output_path, "binary"
        )

    async def generate_image(self, prompt: str, output_path: str) -> None:
        """Generate an image for ``prompt`` and write it to ``output_path``."""
        request = {"model": self.config.model, "prompt": prompt}
        await self._post_and_write_binary(
            self.config.endpoint(self.config.image_generations_path),
            request,
            output_path,
            "image",
            transform=_decode_image_payload,
        )

    async def edit_image(self, prompt: str, input_path: str, output_path: str) -> None:
        """
        Edit the image at ``input_path`` according to ``prompt``.

        Raises:
            MediaError: The input cannot be read or is not an image.
        """
        data = read_file(input_path)
        mime = sniff_image_mime(data)
        if not mime.startswith("image/"):
            raise MediaError(f"unsupported MIME type: {mime}")

        body, content_type = _encode_multipart(
            fields={"prompt": prompt, "model": self.config.model},
            files={"image": (os.path.basename(input_path), data, mime)},
        )
        endpoint = self.config.endpoint(self.config.image_edits_path)

        trace_request(self._log, endpoint, body, {"Content-Type": content_type})
        try:
            raw = await self.transport.post_with_headers(endpoint, body, self._auth_headers(content_type))
        except TransportError as e:
            raise TransportError(f"failed to edit image: {e}", status_code=e.status_code) from e

        image = _decode_image_payload(raw)
        _write_output(output_path, image, "image")
        self._log.debug("[image] %d bytes written to %s", len(image), output_path)

    async def transcribe(self, audio_path: str) -> str:
        """
        Transcribe an audio file and record the exchange in the conversation.

        Returns:
            The transcribed text.
        """
        await self.init_history()

        data = read_file(audio_path)
        name = os.path.basename(audio_path)
        body, content_type = _encode_multipart(
            fields={"model": self.config.model},
            files={"file": (name, data, "application/octet-stream")},
        )
        endpoint = self.config.endpoint(self.config.transcriptions_path)
        headers = self._auth_headers(content_type)

        trace_request(self._log, endpoint, body, headers)
        raw = await self.transport.post_with_headers(endpoint, body, headers)
        trace_response(self._log, raw)

        try:
            text = json.loads(raw)["text"]
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError, KeyError) as e:
            raise DecodeError(f"failed to parse transcription: {e}") from e

        self.window.append_untruncated(Turn(role=USER_ROLE, content=f"[transcribe] {name}", timestamp=self.window.now()))
        self.window.append_untruncated(Turn(role=ASSISTANT_ROLE, content=text, timestamp=self.window.now()))
        self.window.truncate()

        await self._persist_best_effort()
        return text

    async def _post_and_write_binary(
        self,
        endpoint: str,
        request: Dict[str, Any],
        output_path: str,
        label: str,
        transform: Optional[Callable[[bytes], bytes]] = None,
    ) -> None:
        body = encode_body(request)

        trace_request(self._log, endpoint, body, service_name=self.config.name)
        try:
            raw = await self.transport.post(endpoint, body, False)
        except TransportError as e:
            raise TransportError(f"API request failed: {e}", status_code=e.status_code) from e

        if transform is not None:
            raw = transform(raw)

        _write_output(output_path, raw, label)
        self._log.debug("[%s] %d bytes written to %s", label, len(raw), output_path)


def _encode_multipart(
    fields: Dict[str, str],
    files: Dict[str, Tuple[str, bytes, str]],
) -> Tuple[bytes, str]:
    """Multipart/form-data body and its Content-Type, encoded by httpx."""
    request = httpx.Request("POST", "http://multipart.invalid", data=fields, files=files)
    return request.read(), request.headers["Content-Type"]


def _decode_image_payload(raw: bytes) -> bytes:
    """Bytes of ``data[0].b64_json`` from an images API response."""
    try:
        response = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise DecodeError(f"failed to decode response: {e}") from e

    data = response.get("data") if isinstance(response, dict) else None
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        raise SemanticError("no image data returned")

    try:
        return base64.b64decode(data[0].get("b64_json") or "", validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"failed to decode base64 image: {e}") from e


def _write_output(path: str, data: bytes, label: str) -> None:
    try:
        with open(path, "wb") as handle:
            handle.write(data)
    except OSError as e:
        raise MediaError(f"failed to write {label}: {e}") from e
