"""Tests for the optional topic-context search."""
from __future__ import annotations

import json

import httpx
import pytest

from quizsmith.search import EXA_SEARCH_URL, fetch_topic_context, format_context


class TestFormatContext:
    def test_numbered_sources_truncated(self):
        context = format_context([{"text": "a" * 600}, {"text": ""}, {"text": "short"}])
        assert "Source 1: " + "a" * 500 + "..." in context
        assert "Source 3: short..." in context
        assert "Source 2" not in context

    def test_empty(self):
        assert format_context([]) == ""


class TestFetchTopicContext:
    @pytest.mark.asyncio
    async def test_success(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"results": [{"text": "Velocity is the rate of change"}]})

        context = await fetch_topic_context(
            "Kinematics", "physics", num_results=3, api_key="exa-key",
            transport=httpx.MockTransport(handler),
        )
        assert "Velocity is the rate of change" in context
        assert str(seen[0].url) == EXA_SEARCH_URL
        assert seen[0].headers["x-api-key"] == "exa-key"
        body = json.loads(seen[0].content)
        assert body["query"] == "Kinematics in physics IB curriculum"
        assert body["numResults"] == 3

    @pytest.mark.asyncio
    async def test_no_key_skips_request(self, monkeypatch):
        monkeypatch.delenv("EXA_API_KEY", raising=False)

        def handler(request):
            raise AssertionError("search should not be called")

        assert await fetch_topic_context("Waves", "physics", transport=httpx.MockTransport(handler)) == ""

    @pytest.mark.asyncio
    async def test_upstream_error_returns_empty(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "boom"}))
        assert await fetch_topic_context("Waves", "physics", api_key="k", transport=transport) == ""

    @pytest.mark.asyncio
    async def test_network_error_returns_empty(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        assert await fetch_topic_context("Waves", "physics", api_key="k",
                                         transport=httpx.MockTransport(handler)) == ""
