"""Validate recovered question data against the tagged question schema."""
from __future__ import annotations

import logging
import re

from quizsmith.errors import InvalidResponseShape, SchemaValidationError
from quizsmith.models import (
    DEFINITION,
    MULTIPLE_CHOICE,
    OPTION_LABELS,
    PROBLEM_SOLVING,
    QUESTION_TYPES,
    DefinitionQuestion,
    MultipleChoiceQuestion,
    ProblemSolvingQuestion,
    Question,
)

_log = logging.getLogger("quizsmith.validation")

_LABEL_RE = re.compile(r"^\(?(?:option\s+)?([A-Da-d])\)?[.):]?$", re.IGNORECASE)

# Common LLM spellings of the type tag
_TYPE_ALIASES = {
    "multiple_choice": MULTIPLE_CHOICE,
    "multiplechoice": MULTIPLE_CHOICE,
    "mcq": MULTIPLE_CHOICE,
    "problem_solving": PROBLEM_SOLVING,
    "problemsolving": PROBLEM_SOLVING,
}


def _text(value) -> str | None:
    """Coerce a required text field; lists of strings (one per step) are joined."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list) and value and all(isinstance(v, str) for v in value):
        return "\n\n".join(v.strip() for v in value if v.strip()) or None
    return None


def _resolve_type(data: dict) -> str | None:
    tag = data.get("type")
    if isinstance(tag, str):
        tag = tag.strip().lower()
        tag = _TYPE_ALIASES.get(tag.replace("-", "_").replace(" ", "_"), tag)
        if tag in QUESTION_TYPES:
            return tag
    # Untagged (or "unknown") objects: only shapes that cannot be mistaken
    if "options" in data:
        return MULTIPLE_CHOICE
    if "steps" in data:
        return PROBLEM_SOLVING
    return None


def _options(value) -> list[str] | None:
    if isinstance(value, dict):
        # {"A": "...", "B": "..."} style
        keys = [k for k in OPTION_LABELS if k in value]
        if len(keys) != len(value):
            return None
        value = [value[k] for k in keys]
    if not isinstance(value, list):
        return None
    options = [_text(v) for v in value]
    if any(o is None for o in options):
        return None
    return options


def _answer_label(answer, options: list[str]) -> str | None:
    """Normalise a multiple-choice answer to A-D.

    Accepts "A", "b)", "Option C", a 0-based index, or the option text itself.
    """
    if isinstance(answer, int) and not isinstance(answer, bool):
        return OPTION_LABELS[answer] if 0 <= answer < len(OPTION_LABELS) else None
    if not isinstance(answer, str):
        return None
    answer = answer.strip()
    m = _LABEL_RE.match(answer)
    if m:
        return m.group(1).upper()
    lowered = answer.lower()
    for label, option in zip(OPTION_LABELS, options):
        if option.lower() == lowered:
            return label
    return None


def _steps(value) -> list[str] | None:
    if not isinstance(value, list):
        return None
    steps = []
    for v in value:
        if isinstance(v, str):
            steps.append(v)
        elif isinstance(v, (int, float)) and not isinstance(v, bool):
            steps.append(str(v))
        else:
            return None
    return steps


def check_question(data) -> tuple[Question | None, str | None]:
    """Build one typed question from raw data.

    Returns ``(question, None)`` on success or ``(None, reason)`` when the
    object has a defect that cannot be coerced.
    """
    if not isinstance(data, dict):
        return None, f"expected object, got {type(data).__name__}"

    qtype = _resolve_type(data)
    if qtype is None:
        return None, f"cannot determine question type (type={data.get('type')!r})"

    question = _text(data.get("question"))
    explanation = _text(data.get("explanation"))
    missing = [name for name, v in (("question", question), ("explanation", explanation)) if v is None]

    if qtype == MULTIPLE_CHOICE:
        options = _options(data.get("options"))
        if options is None:
            return None, "options must be a list of strings"
        if len(options) != 4:
            return None, f"multiple-choice needs exactly 4 options (got {len(options)})"
        label = _answer_label(data.get("correctAnswer"), options)
        if label is None:
            missing.append("correctAnswer")
        if missing:
            return None, f"missing or empty: {', '.join(missing)}"
        return MultipleChoiceQuestion(question, explanation, options=options, correct_answer=label), None

    answer = _text(data.get("correctAnswer"))
    if answer is None:
        missing.append("correctAnswer")
    if missing:
        return None, f"missing or empty: {', '.join(missing)}"

    if qtype == DEFINITION:
        return DefinitionQuestion(question, explanation, correct_answer=answer), None

    steps = None
    if data.get("steps") is not None:
        steps = _steps(data["steps"])
        if steps is None:
            return None, "steps must be a list of strings"
    return ProblemSolvingQuestion(question, explanation, correct_answer=answer, steps=steps), None


def validate(candidate) -> list[Question]:
    """Validate a recovered document and return typed questions with ids assigned.

    Raises :class:`InvalidResponseShape` if there is no ``questions`` array and
    :class:`SchemaValidationError` if no question survives.  Individual bad
    questions are dropped.
    """
    if not isinstance(candidate, dict) or "questions" not in candidate:
        raise InvalidResponseShape("response has no 'questions' key")
    raw = candidate["questions"]
    if not isinstance(raw, list):
        raise InvalidResponseShape(f"'questions' is a {type(raw).__name__}, not an array")

    questions: list[Question] = []
    for i, item in enumerate(raw):
        q, reason = check_question(item)
        if q is None:
            _log.info("  Dropped question %d: %s", i, reason)
            continue
        questions.append(q)

    if not questions:
        raise SchemaValidationError(f"none of the {len(raw)} questions passed validation")

    assign_ids(questions)
    return questions


def assign_ids(questions: list[Question], start: int = 0) -> None:
    for index, q in enumerate(questions, start):
        q.id = f"q-{index}"
