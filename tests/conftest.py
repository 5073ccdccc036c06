"""Shared test fixtures."""
from __future__ import annotations

import json

import pytest

from quizsmith.models import DEFINITION, MULTIPLE_CHOICE, PROBLEM_SOLVING, GenerationRequest
from quizsmith.providers.base import LLMProvider, ProviderResponse, StatusProvider


class FakeLLM(LLMProvider):
    """Returns canned responses in order (the last one repeats) and records calls."""

    def __init__(self, responses=None, error: Exception | None = None, delay: float = 0.0):
        self._responses = responses or [""]
        self._error = error
        self._delay = delay
        self.calls: list[dict] = []

    async def generate_content(self, prompt, system_prompt, options=None) -> ProviderResponse:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "options": options})
        if self._delay:
            import asyncio
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        idx = min(len(self.calls) - 1, len(self._responses) - 1)
        return ProviderResponse(text=self._responses[idx], id="gen-fake")

    def name(self) -> str:
        return "fake-llm"

    @property
    def call_count(self):
        return len(self.calls)


class FakeStatusLLM(FakeLLM, StatusProvider):
    """FakeLLM that also answers status polls."""

    def __init__(self, responses=None, status: dict | None = None, **kwargs):
        super().__init__(responses, **kwargs)
        self.status = status or {}
        self.polled: list[str] = []

    async def check_generation(self, generation_id: str) -> dict:
        self.polled.append(generation_id)
        return self.status


def mc(question="Q", options=("a", "b", "c", "d"), answer="A", explanation="E", **extra) -> dict:
    return {
        "type": MULTIPLE_CHOICE,
        "question": question,
        "options": list(options),
        "correctAnswer": answer,
        "explanation": explanation,
        **extra,
    }


def definition(question="Define X", answer="X is Y", explanation="Because") -> dict:
    return {"type": DEFINITION, "question": question, "correctAnswer": answer, "explanation": explanation}


def problem(question="Solve", answer="42 J", steps=("Step 1", "Step 2"), explanation="Work") -> dict:
    return {
        "type": PROBLEM_SOLVING,
        "question": question,
        "correctAnswer": answer,
        "steps": list(steps),
        "explanation": explanation,
    }


def quiz_json(*questions: dict) -> str:
    return json.dumps({"questions": list(questions)})


@pytest.fixture
def mc_request():
    return GenerationRequest(topic="Kinematics", subject="physics", count=3, question_types=[MULTIPLE_CHOICE])


@pytest.fixture
def mixed_request():
    return GenerationRequest(
        topic="Energetics",
        subject="chemistry",
        count=5,
        difficulty="hard",
        question_types=[MULTIPLE_CHOICE, DEFINITION, PROBLEM_SOLVING],
    )
