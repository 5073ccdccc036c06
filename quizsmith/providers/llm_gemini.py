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

log = logging.getLogger("quizsmith.llm")

DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiProvider(LLMProvider):
    """Google generative-model SDK backend. Has no status endpoint."""

    def __init__(self, model: str = "", api_key: str | None = None):
        import google.generativeai as genai

        self.api_key = resolve_api_key(api_key, "GEMINI_API_KEY", "Gemini")
        genai.configure(api_key=self.api_key)
        self._genai = genai
        self.model = model or DEFAULT_MODEL

    def _generation_config(self, options: GenerationOptions):
        config: dict = {
            "temperature": options.temperature,
            "top_p": options.top_p,
            "max_output_tokens": options.max_output_tokens,
        }
        if options.wants_json or options.response_schema:
            config["response_mime_type"] = "application/json"
        if options.response_schema:
            config["response_schema"] = options.response_schema
        return self._genai.GenerationConfig(**config)

    async def generate_content(
        self, prompt: str, system_prompt: str, options: GenerationOptions | None = None
    ) -> ProviderResponse:
        from google.api_core import exceptions as google_exceptions

        options = options or GenerationOptions()
        model_name = options.model or self.model
        model = self._genai.GenerativeModel(
            model_name,
            system_instruction=system_prompt,
            generation_config=self._generation_config(options),
        )
        parts: list = [prompt]
        if options.file is not None:
            parts.append({"mime_type": options.file.mime_type, "data": options.file.data})

        log.info("Gemini request (%s): %d prompt chars%s", model_name, len(prompt),
                 f", file {options.file.name}" if options.file else "")
        log.debug("── PROMPT ──\n%s", preview(prompt))
        t0 = time.monotonic()
        try:
            response = await model.generate_content_async(parts)
        except google_exceptions.GoogleAPICallError as e:
            raise status_error(e.code or 500, e.message or type(e).__name__, "Gemini") from e
        except google_exceptions.GoogleAPIError as e:
            raise ProviderTransportError(f"Gemini request failed: {type(e).__name__}") from e
        elapsed = time.monotonic() - t0

        try:
            text = response.text
        except ValueError:
            # Blocked or empty candidate: no text parts to join
            log.warning("Gemini returned no text (finish reason %s)",
                        getattr(response.candidates[0], "finish_reason", "?") if response.candidates else "none")
            text = ""
        log.info("Gemini response (%.1fs, %d chars)", elapsed, len(text))
        log.debug("── RESPONSE ──\n%s", preview(text))
        return ProviderResponse(text=text)

    def name(self) -> str:
        return f"gemini/{self.model}"
