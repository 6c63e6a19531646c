"""
Client configuration.

The client consumes configuration as an immutable value. ``from_env`` is a
convenience loader; persisting configuration is left to the caller.
"""

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for ChatClient and HttpTransport."""
    name: str = "openai"
    api_key: str = ""
    model: str = "gpt-4o"
    max_tokens: int = 4096
    context_window: int = 8192
    role: str = "You are a helpful assistant."
    temperature: float = 1.0
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    seed: int = 0
    effort: str = "low"
    thread: str = "default"
    omit_history: bool = False
    auto_create_new_thread: bool = True
    url: str = "https://api.openai.com"
    completions_path: str = "/v1/chat/completions"
    responses_path: str = "/v1/responses"
    models_path: str = "/v1/models"
    speech_path: str = "/v1/audio/speech"
    image_generations_path: str = "/v1/images/generations"
    image_edits_path: str = "/v1/images/edits"
    transcriptions_path: str = "/v1/audio/transcriptions"
    auth_header: str = "Authorization"
    auth_token_prefix: str = "Bearer "
    user_agent: str = "chatcontext"
    custom_headers: Dict[str, str] = field(default_factory=dict)
    voice: str = "nova"
    apify_api_key: str = ""
    timeout: float = 120.0

    def with_context_window(self, window: int) -> 'ClientConfig':
        return dataclasses.replace(self, context_window=window)

    def with_service_url(self, url: str) -> 'ClientConfig':
        return dataclasses.replace(self, url=url)

    def endpoint(self, path: str) -> str:
        return self.url + path

    @classmethod
    def from_env(cls, name: str = "openai", dotenv_path: Optional[str] = None) -> 'ClientConfig':
        """
        Build a configuration from environment variables.

        Variables are prefixed with the upper-cased service name, e.g.
        ``OPENAI_API_KEY``, ``OPENAI_MODEL``, ``OPENAI_CONTEXT_WINDOW``. A
        ``.env`` file is loaded first when present; variables already set in
        the environment win.

        Args:
            name: Service name, also used as the variable prefix.
            dotenv_path: Optional explicit ``.env`` location.
        """
        load_dotenv(dotenv_path)
        prefix = name.upper() + "_"
        defaults = cls(name=name)
        values = {}

        for f in dataclasses.fields(cls):
            if f.name in ("name", "custom_headers"):
                continue
            raw = os.getenv(prefix + f.name.upper())
            if raw is None:
                continue
            current = getattr(defaults, f.name)
            if isinstance(current, bool):
                values[f.name] = raw.strip().lower() in ("1", "true", "yes", "on")
            elif isinstance(current, int):
                values[f.name] = int(raw)
            elif isinstance(current, float):
                values[f.name] = float(raw)
            else:
                values[f.name] = raw

        apify_key = os.getenv("APIFY_API_KEY")
        if apify_key and "apify_api_key" not in values:
            values["apify_api_key"] = apify_key

        return dataclasses.replace(defaults, **values)
