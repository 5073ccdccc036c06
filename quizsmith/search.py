"""Optional topic context from the Exa search API."""
from __future__ import annotations

import logging
import os

import httpx

log = logging.getLogger("quizsmith.search")

EXA_SEARCH_URL = "https://api.exa.ai/search"
SNIPPET_CHARS = 500


def format_context(results: list[dict]) -> str:
    sources = []
    for i, result in enumerate(results, 1):
        text = (result.get("text") or "").strip()
        if text:
            sources.append(f"Source {i}: {text[:SNIPPET_CHARS]}...")
    if not sources:
        return ""
    return "Here is some additional context about the topic:\n\n" + "\n\n".join(sources)


async def fetch_topic_context(
    topic: str,
    subject: str,
    num_results: int = 5,
    api_key: str | None = None,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Search for *topic* and return a prompt-ready context section.

    Returns "" when no key is configured or the search fails in any way;
    generation always proceeds without context in that case.
    """
    api_key = api_key if api_key is not None else os.environ.get("EXA_API_KEY", "")
    if not api_key:
        log.info("Search enabled but EXA_API_KEY is not set; skipping")
        return ""

    body = {
        "query": f"{topic} in {subject} IB curriculum",
        "numResults": num_results,
        "type": "keyword",
        "contents": {"text": True},
    }
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.post(EXA_SEARCH_URL, headers={"x-api-key": api_key}, json=body)
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPStatusError as e:
        log.warning("Exa search failed (%d); continuing without context", e.response.status_code)
        return ""
    except (httpx.RequestError, ValueError) as e:
        log.warning("Exa search failed (%s); continuing without context", type(e).__name__)
        return ""

    results = data.get("results") if isinstance(data, dict) else None
    context = format_context(results or [])
    log.info("Exa search: %d results, %d context chars", len(results or []), len(context))
    return context
