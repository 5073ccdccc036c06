from __future__ import annotations

import logging
import time

import httpx

from quizsmith.errors import ProviderTransportError
from quizsmith.models import Attachment, GenerationOptions
from quizsmith.providers.base import (
    ProviderResponse,
    StatusProvider,
    preview,
    resolve_api_key,
    status_error,
)

log = logging.getLogger("quizsmith.llm")

OPENROUTER_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "meta-llama/llama-4-scout:free"


def file_part(doc: Attachment) -> dict:
    """OpenAI-style content part for an attachment (OpenRouter accepts the same shapes)."""
    if doc.is_image:
        return {"type": "image_url", "image_url": {"url": doc.data_url()}}
    return {"type": "file", "file": {"filename": doc.name, "file_data": doc.data_url()}}


def user_content(prompt: str, doc: Attachment | None) -> str | list[dict]:
    if doc is None:
        return prompt
    return [{"type": "text", "text": prompt}, file_part(doc)]


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.reason_phrase or "Unknown error"
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        return str(err.get("message") or "Unknown error")
    return str(err or "Unknown error")


class OpenRouterProvider(StatusProvider):
    def __init__(
        self,
        model: str = "",
        api_key: str | None = None,
        app_url: str = "http://localhost:8765",
        app_title: str = "Science Quiz Generator",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = resolve_api_key(api_key, "OPENROUTER_API_KEY", "OpenRouter")
        self.model = model or DEFAULT_MODEL
        self.app_url = app_url
        self.app_title = app_title
        self.timeout = timeout
        self._transport = transport

    def _headers(self, title: str | None = None) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.app_url,
            "X-Title": title or self.app_title,
        }

    async def _request(self, method: str, path: str, title: str | None = None, **kwargs) -> dict:
        try:
            async with httpx.AsyncClient(
                base_url=OPENROUTER_URL, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.request(method, path, headers=self._headers(title), **kwargs)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise status_error(e.response.status_code, _error_message(e.response), "OpenRouter") from e
        except httpx.RequestError as e:
            raise ProviderTransportError(f"OpenRouter request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise ProviderTransportError("OpenRouter returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise ProviderTransportError("OpenRouter returned an unexpected body")
        return data

    async def generate_content(
        self, prompt: str, system_prompt: str, options: GenerationOptions | None = None
    ) -> ProviderResponse:
        options = options or GenerationOptions()
        model = options.model or self.model
        body: dict = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content(prompt, options.file)},
            ],
            "temperature": options.temperature,
            "top_p": options.top_p,
            "max_tokens": options.max_output_tokens,
        }
        if options.response_format:
            body["response_format"] = options.response_format

        log.info("OpenRouter request (%s): %d prompt chars%s", model, len(prompt),
                 f", file {options.file.name}" if options.file else "")
        log.debug("── PROMPT ──\n%s", preview(prompt))
        t0 = time.monotonic()
        data = await self._request("POST", "/chat/completions", title=options.title, json=body)
        elapsed = time.monotonic() - t0

        choices = data.get("choices") or [{}]
        text = (choices[0].get("message") or {}).get("content") or ""
        tokens = (data.get("usage") or {}).get("completion_tokens", "?")
        log.info("OpenRouter response (%.1fs, %s tokens, id %s)", elapsed, tokens, data.get("id"))
        log.debug("── RESPONSE ──\n%s", preview(text))
        return ProviderResponse(text=text, id=data.get("id"))

    async def check_generation(self, generation_id: str) -> dict:
        return await self._request("GET", "/generation", params={"id": generation_id})

    def name(self) -> str:
        return f"openrouter/{self.model}"
