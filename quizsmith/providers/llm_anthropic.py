from __future__ import annotations

import logging
import time

from quizsmith.errors import ProviderTransportError
from quizsmith.models import Attachment, GenerationOptions
from quizsmith.providers.base import (
    LLMProvider,
    ProviderResponse,
    preview,
    resolve_api_key,
    status_error,
)

log = logging.getLogger("quizsmith.llm")


def _attachment_block(doc: Attachment) -> dict:
    source = {"type": "base64", "media_type": doc.mime_type, "data": doc.b64()}
    return {"type": "image" if doc.is_image else "document", "source": source}


class AnthropicProvider(LLMProvider):
    def __init__(self, model: str = "", api_key: str | None = None, client=None):
        import anthropic

        self._anthropic = anthropic
        if client is None:
            client = anthropic.AsyncAnthropic(
                api_key=resolve_api_key(api_key, "ANTHROPIC_API_KEY", "Anthropic"),
            )
        self.client = client
        self.model = model or "claude-sonnet-4-20250514"

    async def generate_content(
        self, prompt: str, system_prompt: str, options: GenerationOptions | None = None
    ) -> ProviderResponse:
        options = options or GenerationOptions()
        model = options.model or self.model
        content: list[dict] = []
        if options.file is not None:
            content.append(_attachment_block(options.file))
        content.append({"type": "text", "text": prompt})

        log.info("Anthropic request (%s): %d prompt chars", model, len(prompt))
        log.debug("── PROMPT ──\n%s", preview(prompt))
        t0 = time.monotonic()
        try:
            message = await self.client.messages.create(
                model=model,
                max_tokens=options.max_output_tokens,
                temperature=options.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": content}],
            )
        except self._anthropic.APIStatusError as e:
            raise status_error(e.status_code, e.message, "Anthropic") from e
        except self._anthropic.APIConnectionError as e:
            raise ProviderTransportError(f"Anthropic request failed: {type(e).__name__}") from e

        text = "".join(block.text for block in message.content if getattr(block, "type", "") == "text")
        log.info("Anthropic response (%.1fs, %d chars, stop %s)",
                 time.monotonic() - t0, len(text), message.stop_reason)
        log.debug("── RESPONSE ──\n%s", preview(text))
        return ProviderResponse(text=text, id=message.id)

    def name(self) -> str:
        return f"anthropic/{self.model}"
