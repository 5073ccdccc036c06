from __future__ import annotations

import logging
import time

import httpx

from quizsmith.errors import ProviderTransportError
from quizsmith.models import GenerationOptions
from quizsmith.providers.base import LLMProvider, ProviderResponse, preview, status_error

log = logging.getLogger("quizsmith.llm")


class OllamaProvider(LLMProvider):
    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "",
        thinking: bool = False,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model or "qwen3:8b"
        self.thinking = thinking
        self.timeout = timeout
        self._transport = transport

    async def generate_content(
        self, prompt: str, system_prompt: str, options: GenerationOptions | None = None
    ) -> ProviderResponse:
        options = options or GenerationOptions()
        model = options.model or self.model
        user: dict = {"role": "user", "content": prompt}
        if options.file is not None:
            if options.file.is_image:
                user["images"] = [options.file.b64()]
            else:
                log.warning("Ollama accepts image attachments only; ignoring %s (%s)",
                            options.file.name, options.file.mime_type)
        body: dict = {
            "model": model,
            "messages": [{"role": "system", "content": system_prompt}, user],
            "stream": False,
            "think": self.thinking,
            "options": {
                "temperature": options.temperature,
                "top_p": options.top_p,
                "num_predict": options.max_output_tokens,
            },
        }
        if options.wants_json:
            body["format"] = "json"

        log.info("Ollama request (%s): %d prompt chars", model, len(prompt))
        log.debug("── PROMPT ──\n%s", preview(prompt))
        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(f"{self.base_url}/api/chat", json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise status_error(e.response.status_code, e.response.reason_phrase, "Ollama") from e
        except httpx.RequestError as e:
            raise ProviderTransportError(f"Ollama unreachable at {self.base_url}: {type(e).__name__}") from e
        except ValueError as e:
            raise ProviderTransportError("Ollama returned a non-JSON body") from e
        elapsed = time.monotonic() - t0

        text = (data.get("message") or {}).get("content") or ""
        tokens = data.get("eval_count", "?")
        log.info("Ollama response (%.1fs, %s tokens)", elapsed, tokens)
        log.debug("── RESPONSE ──\n%s", preview(text))
        return ProviderResponse(text=text)

    def name(self) -> str:
        return f"ollama/{self.model}"
