"""FastAPI application with all routes."""
from __future__ import annotations

import logging
from dataclasses import replace

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from quizsmith.config import Settings, check_field, known_fields, load_settings, save_settings
from quizsmith.errors import (
    InvalidRequest,
    ProviderConfigurationError,
    ProviderTransportError,
    QuizsmithError,
    RecoveryExhaustedError,
    SchemaValidationError,
)
from quizsmith.models import GenerationRequest
from quizsmith.progress import ProgressReport, ProgressState, TrackerRegistry
from quizsmith.providers.base import LLMProvider, supports_status
from quizsmith.providers.registry import KNOWN_PROVIDERS, check_provider_name, get_llm
from quizsmith.quiz_generator import generate_quiz, grade_answer, options_for
from quizsmith.search import fetch_topic_context

app = FastAPI(title="Quizsmith")

# Global state (initialized in startup). Replaced wholesale, never mutated.
_settings: Settings | None = None
_trackers = TrackerRegistry()

_log = logging.getLogger("quizsmith.app")

_ERROR_STATUS = {
    InvalidRequest: 400,
    ProviderConfigurationError: 503,
    ProviderTransportError: 502,
    RecoveryExhaustedError: 502,
    SchemaValidationError: 502,
}


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def _swap_settings(new: Settings) -> Settings:
    """Install *new* for subsequent requests; requests in flight keep their snapshot."""
    global _settings
    _settings = new
    save_settings(new)
    return new


def _get_llm(s: Settings) -> LLMProvider:
    return get_llm(s)


@app.on_event("startup")
async def startup():
    global _settings
    if _settings is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _log.info("Using LLM provider %s", _settings.llm_provider)


@app.exception_handler(QuizsmithError)
async def quizsmith_error_handler(request: Request, exc: QuizsmithError):
    status = next((code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    if status >= 500:
        _log.warning("%s %s failed: %s: %s", request.method, request.url.path, exc.category, exc)
    return JSONResponse({"error": exc.category, "message": exc.message}, status_code=status)


async def _read_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise InvalidRequest("request body must be JSON") from None
    if not isinstance(body, dict):
        raise InvalidRequest("request body must be a JSON object")
    return body


def _request_id(body: dict) -> str | None:
    rid = body.get("requestId")
    return rid if isinstance(rid, str) and rid.strip() else None


async def _run_generation(req: GenerationRequest, request_id: str | None) -> dict:
    s = get_settings()  # one snapshot for the whole request
    llm = _get_llm(s)
    tracker = _trackers.start(request_id)
    try:
        context = ""
        if s.search_enabled and req.document is None:
            context = await fetch_topic_context(req.topic, req.subject, num_results=s.search_results)
        result = await generate_quiz(
            llm, req, timeout=s.request_timeout, options=options_for(s), context=context,
        )
    finally:
        tracker.complete()
    _trackers.alias(tracker, result.generation_id)
    return result.to_dict()


# ── API: Generation ───────────────────────────────────────────────────────

@app.post("/api/generate-quiz")
async def api_generate_quiz(request: Request):
    body = await _read_body(request)
    try:
        req = GenerationRequest.from_dict(body)
    except ValueError as e:
        raise InvalidRequest(str(e)) from None
    return await _run_generation(req, _request_id(body))


@app.post("/api/generate-document-quiz")
async def api_generate_document_quiz(request: Request):
    body = await _read_body(request)
    try:
        req = GenerationRequest.for_document(body)
    except ValueError as e:
        raise InvalidRequest(str(e)) from None
    return await _run_generation(req, _request_id(body))


@app.post("/api/check-generation")
async def api_check_generation(request: Request):
    body = await _read_body(request)
    generation_id = body.get("generationId")
    if not isinstance(generation_id, str) or not generation_id.strip():
        raise InvalidRequest("generationId is required")

    tracker = _trackers.get(generation_id)
    if tracker is not None and (tracker.state is ProgressState.COMPLETE or not tracker.remote):
        return tracker.synthetic().to_dict()
    if generation_id.startswith("mock-"):
        return ProgressReport(100, ProgressState.COMPLETE).to_dict()

    llm = _get_llm(get_settings())
    if not supports_status(llm):
        # Unknown handle on a backend without status: nothing left to wait for
        return ProgressReport(100, ProgressState.COMPLETE).to_dict()
    status = await llm.check_generation(generation_id)
    if tracker is None:
        tracker = _trackers.start(generation_id)
        tracker.remote = True
    return tracker.from_status(status).to_dict()


# ── API: Grading ──────────────────────────────────────────────────────────

@app.post("/api/grade-answer")
async def api_grade_answer(request: Request):
    body = await _read_body(request)
    details = body.get("questionDetails") if isinstance(body.get("questionDetails"), dict) else {}
    question = body.get("question") or details.get("question") or ""
    criteria = body.get("gradingCriteria") or details.get("gradingCriteria") or ""
    answer = body.get("userAnswer") or ""
    if not all(isinstance(v, str) for v in (question, criteria, answer)):
        raise InvalidRequest("question, userAnswer and gradingCriteria must be strings")

    s = get_settings()
    llm = _get_llm(s)
    try:
        result = await grade_answer(
            llm, question, answer, criteria, timeout=s.request_timeout, options=options_for(s),
        )
    except ValueError as e:
        raise InvalidRequest(str(e)) from None
    return result.to_dict()


# ── API: Settings ─────────────────────────────────────────────────────────

def _checked_provider(name) -> str:
    """Validate an operator-supplied backend name; a bad name is the caller's fault here."""
    try:
        return check_provider_name(name if isinstance(name, str) else "")
    except ProviderConfigurationError as e:
        raise InvalidRequest(e.message) from None


@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await _read_body(request)
    updates = {k: v for k, v in body.items() if k in known_fields()}
    if "llm_provider" in updates:
        updates["llm_provider"] = _checked_provider(updates["llm_provider"])
    try:
        updates = {k: check_field(k, v) for k, v in updates.items()}
        new = replace(get_settings(), **updates)
        options_for(new)  # range-checks the sampling fields
    except (TypeError, ValueError) as e:
        raise InvalidRequest(str(e)) from None
    return _swap_settings(new).to_dict()


@app.get("/api/provider")
async def api_get_provider():
    return {"provider": get_settings().llm_provider, "providers": list(KNOWN_PROVIDERS)}


@app.post("/api/provider")
async def api_set_provider(request: Request):
    body = await _read_body(request)
    provider = _checked_provider(body.get("provider"))
    new = _swap_settings(replace(get_settings(), llm_provider=provider))
    _log.info("LLM provider switched to %s", provider)
    return {"provider": new.llm_provider, "providers": list(KNOWN_PROVIDERS)}
