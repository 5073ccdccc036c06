"""Orchestrate one LLM call into a validated quiz, falling back to placeholders."""
from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import replace
from typing import TYPE_CHECKING

from quizsmith.errors import (
    PartialRecoveryWarning,
    ProviderTransportError,
    RecoveryExhaustedError,
    SchemaValidationError,
)
from quizsmith.fallback import generate_mock_questions
from quizsmith.models import GenerationOptions, GenerationRequest, GradeResult, Question, QuizResult
from quizsmith.prompts import build_grading_prompts, build_prompts
from quizsmith.providers.base import supports_status
from quizsmith.recovery import recover
from quizsmith.validation import validate

if TYPE_CHECKING:
    from quizsmith.config import Settings
    from quizsmith.providers.base import LLMProvider

_log = logging.getLogger("quizsmith.qgen")

JSON_RESPONSE = {"type": "json_object"}


def options_for(s: Settings) -> GenerationOptions:
    return GenerationOptions(
        temperature=s.temperature,
        top_p=s.top_p,
        max_output_tokens=s.max_output_tokens,
        title=s.app_title,
    )


def _mock_id() -> str:
    return f"mock-{int(time.time() * 1000)}"


def _fallback(request: GenerationRequest, note: str) -> QuizResult:
    _log.warning("Falling back to %d placeholder questions: %s", request.count, note)
    return QuizResult(
        questions=generate_mock_questions(request),
        generation_id=_mock_id(),
        note=note,
    )


def _fit_to_count(questions: list[Question], request: GenerationRequest) -> tuple[list[Question], str | None]:
    """Trim or pad a validated batch to exactly ``request.count`` questions."""
    if len(questions) > request.count:
        _log.info("  Model returned %d questions, keeping the first %d", len(questions), request.count)
        return questions[: request.count], None
    if len(questions) < request.count:
        warning = PartialRecoveryWarning(len(questions), request.count)
        _log.warning("%s", warning)
        missing = request.count - len(questions)
        return questions + generate_mock_questions(request, count=missing, start=len(questions)), str(warning)
    return questions, None


def _transport_note(e: ProviderTransportError) -> str:
    reason = f"upstream {e.status}" if e.status is not None else "network failure"
    return f"Using mock data due to API call error ({reason})"


async def generate_quiz(
    llm: LLMProvider,
    request: GenerationRequest,
    *,
    timeout: float = 55.0,
    options: GenerationOptions | None = None,
    context: str = "",
) -> QuizResult:
    """Generate exactly ``request.count`` questions.

    Only ``ProviderConfigurationError`` escapes.  Transport failures,
    timeouts, unrecoverable text and schema failures all produce a
    placeholder batch whose ``note`` says which failure happened.
    """
    system_prompt, prompt = build_prompts(request, context)
    options = replace(
        options or GenerationOptions(),
        file=request.document,
        response_format=(options.response_format if options else None) or JSON_RESPONSE,
    )
    _log.info("Generating %d %s questions on %r with %s",
              request.count, "/".join(request.question_types), request.topic, llm.name())

    try:
        response = await asyncio.wait_for(llm.generate_content(prompt, system_prompt, options), timeout)
    except ProviderTransportError as e:
        _log.warning("Provider call failed: %s", e)
        return _fallback(request, _transport_note(e))
    except asyncio.TimeoutError:
        return _fallback(request, f"Using mock data because the provider did not answer within {timeout:g}s")

    try:
        parsed, stage = recover(response.text)
        questions = validate(parsed)
    except RecoveryExhaustedError as e:
        _log.warning("%s", e)
        return _fallback(request, "Using mock data due to parsing error")
    except SchemaValidationError as e:
        _log.warning("Recovered data failed validation: %s", e)
        return _fallback(request, "Using mock data due to invalid response format")

    questions, note = _fit_to_count(questions, request)
    generation_id = response.id if supports_status(llm) else None
    if note is not None and generation_id is None:
        generation_id = _mock_id()
    _log.info("Returning %d questions (recovered via %s)", len(questions), stage)
    return QuizResult(questions=questions, generation_id=generation_id, note=note, stage=stage)


def _score(value) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or math.isnan(value):
        return None
    return float(value) if 0 <= value <= 100 else None


async def grade_answer(
    llm: LLMProvider,
    question: str,
    user_answer: str,
    grading_criteria: str = "",
    *,
    timeout: float = 55.0,
    options: GenerationOptions | None = None,
) -> GradeResult:
    """Grade a free-text answer with the LLM.

    Unlike quiz generation there is no placeholder result: provider errors
    propagate and unusable responses raise ``RecoveryExhaustedError`` or
    ``SchemaValidationError``.
    """
    if not question.strip() or not user_answer.strip():
        raise ValueError("question and userAnswer are required")
    system_prompt, prompt = build_grading_prompts(question, user_answer, grading_criteria)
    options = replace(options or GenerationOptions(), response_format=JSON_RESPONSE)

    try:
        response = await asyncio.wait_for(llm.generate_content(prompt, system_prompt, options), timeout)
    except asyncio.TimeoutError:
        raise ProviderTransportError(f"grading did not finish within {timeout:g}s") from None

    parsed, _ = recover(response.text)
    if not isinstance(parsed, dict):
        raise SchemaValidationError("grading response is not a JSON object")
    score = _score(parsed.get("score"))
    if score is None:
        raise SchemaValidationError(f"grading score must be a number from 0 to 100 (got {parsed.get('score')!r})")
    feedback = parsed.get("feedback")
    if not isinstance(feedback, str) or not feedback.strip():
        raise SchemaValidationError("grading feedback is missing")
    return GradeResult(score=score, feedback=feedback.strip())
