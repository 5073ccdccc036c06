from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

from quizsmith.errors import ProviderConfigurationError, ProviderTransportError
from quizsmith.models import GenerationOptions
from quizsmith.recovery import parse_lenient

# How much raw prompt/response text goes into DEBUG logs
LOG_PREVIEW_CHARS = 2000


@dataclass
class ProviderResponse:
    text: str = ""
    id: str | None = None

    def json(self) -> dict:
        """Best-effort structured view of ``text``; ``{}`` when nothing parses."""
        return parse_lenient(self.text)


class LLMProvider(ABC):
    @abstractmethod
    async def generate_content(
        self, prompt: str, system_prompt: str, options: GenerationOptions | None = None
    ) -> ProviderResponse:
        ...

    @abstractmethod
    def name(self) -> str:
        ...


class StatusProvider(LLMProvider):
    """A backend whose generations can be polled by id while they run."""

    @abstractmethod
    async def check_generation(self, generation_id: str) -> dict:
        ...


def supports_status(llm: LLMProvider) -> bool:
    return isinstance(llm, StatusProvider)


def resolve_api_key(explicit: str | None, env_var: str, backend: str) -> str:
    key = explicit if explicit is not None else os.environ.get(env_var, "")
    if not key.strip():
        raise ProviderConfigurationError(f"{backend} API key not found (set {env_var})")
    return key.strip()


def status_error(status: int, message: str, backend: str) -> Exception:
    """Translate an upstream HTTP status into the matching provider error."""
    if status in (401, 403):
        return ProviderConfigurationError(f"{backend} rejected the credential ({status})")
    return ProviderTransportError(f"{backend} API error: {message}"[:300], status=status)


def preview(text: str) -> str:
    if len(text) <= LOG_PREVIEW_CHARS:
        return text
    return f"{text[:LOG_PREVIEW_CHARS]}… [{len(text) - LOG_PREVIEW_CHARS} more chars]"
