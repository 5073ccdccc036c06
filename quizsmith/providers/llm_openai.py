from __future__ import annotations

import logging
import time

from quizsmith.errors import ProviderTransportError
from quizsmith.models import GenerationOptions
from quizsmith.providers.base import (
    LLMProvider,
    ProviderResponse,
    preview,
    resolve_api_key,
    status_error,
)
from quizsmith.providers.llm_openrouter import user_content

log = logging.getLogger("quizsmith.llm")


class OpenAIProvider(LLMProvider):
    def __init__(self, model: str = "", api_key: str | None = None, client=None):
        import openai

        self._openai = openai
        if client is None:
            client = openai.AsyncOpenAI(api_key=resolve_api_key(api_key, "OPENAI_API_KEY", "OpenAI"))
        self.client = client
        self.model = model or "gpt-4o-mini"

    async def generate_content(
        self, prompt: str, system_prompt: str, options: GenerationOptions | None = None
    ) -> ProviderResponse:
        options = options or GenerationOptions()
        model = options.model or self.model
        kwargs: dict = {}
        if options.response_format:
            kwargs["response_format"] = options.response_format

        log.info("OpenAI request (%s): %d prompt chars", model, len(prompt))
        log.debug("── PROMPT ──\n%s", preview(prompt))
        t0 = time.monotonic()
        try:
            resp = await self.client.chat.completions.create(
                model=model,
                temperature=options.temperature,
                top_p=options.top_p,
                max_tokens=options.max_output_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content(prompt, options.file)},
                ],
                **kwargs,
            )
        except self._openai.APIStatusError as e:
            raise status_error(e.status_code, e.message, "OpenAI") from e
        except self._openai.APIConnectionError as e:
            raise ProviderTransportError(f"OpenAI request failed: {type(e).__name__}") from e

        text = (resp.choices[0].message.content if resp.choices else None) or ""
        log.info("OpenAI response (%.1fs, %d chars)", time.monotonic() - t0, len(text))
        log.debug("── RESPONSE ──\n%s", preview(text))
        return ProviderResponse(text=text, id=resp.id)

    def name(self) -> str:
        return f"openai/{self.model}"
