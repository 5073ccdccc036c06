"""Recover a questions document from unreliable model output.

Recovery is an ordered list of stages, each a plain function
``(text) -> parsed`` that raises :class:`StageFailed` when it cannot produce
a candidate.  Stages run cheapest-first and the first success wins:

1. ``direct``      the whole text is JSON
2. ``fenced``      the text is wrapped in a markdown code fence
3. ``backslash``   LaTeX backslashes are invalid JSON escapes; repair and retry
4. ``substring``   JSON embedded in prose; extract the first balanced span
5. ``regex``       per-object field extraction, accepts a partial batch

Stages 3-5 work on the fence-stripped text so a fenced response with
LaTeX damage is still repaired.
"""
from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable

from quizsmith.errors import RecoveryExhaustedError

_log = logging.getLogger("quizsmith.recovery")

_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)
_FENCE_RE = re.compile(r"^\s*```[ \t]*(?:json|JSON)?[ \t]*\r?\n?(.*?)\r?\n?[ \t]*```\s*$", re.DOTALL)

# LaTeX commands that start with a JSON control-escape letter.  Only whole
# command names count, so "\tThe" stays a tab and "\ni = 3" a newline.
_LATEX_CONTROL_COMMANDS = (
    "backslash", "bar", "begin", "beta", "bf", "big", "bigg", "bigl", "bigr", "binom",
    "bmod", "boldsymbol", "bot", "boxed", "bullet",
    "flat", "forall", "frac", "frown",
    "nabla", "neg", "neq", "newline", "nexists", "ngeq", "nleq", "not", "notin",
    "nparallel", "nu",
    "rangle", "rceil", "rfloor", "rho", "right", "rightarrow", "rm",
    "tan", "tanh", "tau", "text", "textbf", "textit", "textrm", "tfrac", "therefore",
    "theta", "tilde", "times", "to", "top", "triangle",
)

# One match per backslash escape pair, scanned left to right so ``\\`` pairs
# stay aligned.  Group 1 flags a JSON control escape that is really the start
# of a LaTeX command.
_ESCAPE_PAIR_RE = re.compile(
    r"\\(?:"
    rf"((?=(?:{'|'.join(_LATEX_CONTROL_COMMANDS)})(?![A-Za-z]))[bfnrt])"
    r"|u[0-9a-fA-F]{4}"
    r"|.)",
    re.DOTALL,
)
_VALID_ESCAPES = frozenset('"\\/bfnrtu')

# Unicode private-use code point; never produced by models and not a control char.
_SENTINEL = "\ue000"
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

_QUESTIONS_KEY_RE = re.compile(r'"questions"\s*:\s*\[')
_OBJECT_SPLIT_RE = re.compile(r"\}\s*,\s*\{")
_FIELD_RES = {
    name: re.compile(rf'"{name}"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)
    for name in ("type", "question", "correctAnswer", "explanation")
}
_ARRAY_START_RES = {
    name: re.compile(rf'"{name}"\s*:\s*\[')
    for name in ("options", "steps")
}
_ARRAY_ITEM_RE = re.compile(r'\s*"((?:[^"\\]|\\.)*)"\s*([,\]])', re.DOTALL)

MAX_TEXT_LENGTH = 400_000


class StageFailed(ValueError):
    pass


# ── Helpers ───────────────────────────────────────────────────────────────

def strip_think_blocks(text: str) -> str:
    return _THINK_RE.sub("", text).strip()


def unfence(text: str) -> str | None:
    """Return the body of a fully fenced text, or None if it is not fenced."""
    m = _FENCE_RE.match(text)
    return m.group(1).strip() if m else None


def has_latex_escapes(text: str) -> bool:
    """True if a JSON control escape (``\\t``, ``\\f`` ...) is really a LaTeX command.

    ``json.loads`` happily decodes ``"\\theta"`` to a TAB followed by
    ``heta``; such a parse is treated as a failure so the repair stage runs.
    """
    return any(m.group(1) for m in _ESCAPE_PAIR_RE.finditer(text))


def _loads(text: str, strict: bool = True):
    try:
        return json.loads(text, strict=strict)
    # ValueError also covers integer literals past the int-conversion digit limit
    except (ValueError, RecursionError) as e:
        raise StageFailed(f"invalid JSON: {e}") from None


def _parse_document(text: str):
    if not text:
        raise StageFailed("empty text")
    if has_latex_escapes(text):
        raise StageFailed("control escapes look like LaTeX commands")
    parsed = _loads(text)
    if not isinstance(parsed, (dict, list)):
        raise StageFailed(f"top-level JSON is a {type(parsed).__name__}")
    return parsed


def repair_backslashes(text: str) -> str:
    """Escape stray single backslashes; leave valid ``\\\\`` pairs alone.

    ``\\\\`` is parked on a sentinel first, every remaining backslash that is
    not a legitimate JSON escape (or is a LaTeX command masquerading as one)
    is doubled, the sentinel is restored and control characters are dropped.
    """
    parked = text.replace("\\\\", _SENTINEL)

    def _escape(m: re.Match) -> str:
        pair = m.group(0)
        if m.group(1) or pair[1] not in _VALID_ESCAPES or (pair[1] == "u" and len(pair) != 6):
            return "\\" + pair
        return pair

    # A trailing lone backslash would escape the closing quote.
    if parked.endswith("\\"):
        parked += "\\"
    fixed = _ESCAPE_PAIR_RE.sub(_escape, parked)
    fixed = fixed.replace(_SENTINEL, "\\\\")
    return _CONTROL_CHARS_RE.sub("", fixed)


def find_json_spans(text: str, opener: str = "{") -> list[tuple[int, int]]:
    """Find balanced top-level ``{…}`` (or ``[…]``) spans in a single pass.

    String literals are skipped so braces inside values do not count.  An
    unclosed opener at the end of the text produces no span.
    """
    closer = "}" if opener == "{" else "]"
    spans: list[tuple[int, int]] = []
    depth = 0
    start = -1
    in_str = False
    escape = False
    for i, ch in enumerate(text):
        if depth == 0:
            if ch == opener:
                depth = 1
                start = i
                in_str = False
                escape = False
            continue
        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = in_str
            continue
        if ch == '"':
            in_str = not in_str
            continue
        if in_str:
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                spans.append((start, i + 1))
    return spans


def _match_array(text: str, open_idx: int) -> str:
    """Return the ``[...]`` content starting at *open_idx*, or the rest of the text if unclosed."""
    for start, end in find_json_spans(text[open_idx:], opener="["):
        if start == 0:
            return text[open_idx + 1 : open_idx + end - 1]
        break
    return text[open_idx + 1 :]


def _decode_string(raw: str) -> str:
    """Decode an extracted JSON string body without trusting it to be valid."""
    try:
        return json.loads(f'"{repair_backslashes(raw)}"', strict=False)
    except json.JSONDecodeError:
        return raw.replace('\\"', '"')


def _extract_array(chunk: str, name: str) -> list[str] | None:
    m = _ARRAY_START_RES[name].search(chunk)
    if not m:
        return None
    items: list[str] = []
    pos = m.end()
    while True:
        im = _ARRAY_ITEM_RE.match(chunk, pos)
        if not im:
            break
        items.append(_decode_string(im.group(1)))
        pos = im.end()
        if im.group(2) == "]":
            break
    return items


# ── Stages ────────────────────────────────────────────────────────────────

def parse_direct(text: str):
    return _parse_document(text.strip())


def parse_fenced(text: str):
    body = unfence(text)
    if body is None:
        raise StageFailed("no code fence")
    return _parse_document(body)


def parse_repaired(text: str):
    body = unfence(text) or text.strip()
    if not body:
        raise StageFailed("empty text")
    parsed = _loads(repair_backslashes(body), strict=False)
    if not isinstance(parsed, (dict, list)):
        raise StageFailed(f"top-level JSON is a {type(parsed).__name__}")
    return parsed


def parse_substring(text: str):
    body = unfence(text) or text
    spans = find_json_spans(body)
    # Spans mentioning the questions key go first; stable otherwise.
    spans.sort(key=lambda s: '"questions"' not in body[s[0] : s[1]])
    for start, end in spans:
        candidate = body[start:end]
        for attempt in (_parse_document, parse_repaired):
            try:
                return attempt(candidate)
            except StageFailed:
                continue

    # Fall back to the questions array alone when the outer object is broken.
    m = _QUESTIONS_KEY_RE.search(body)
    if m:
        array_start = m.end() - 1
        arrays = find_json_spans(body[array_start:], opener="[")
        if arrays and arrays[0][0] == 0:
            wrapped = '{"questions": ' + body[array_start : array_start + arrays[0][1]] + "}"
            try:
                return parse_repaired(wrapped)
            except StageFailed:
                pass
    raise StageFailed("no parseable JSON span")


def _extract_question(chunk: str) -> dict | None:
    fields: dict = {}
    for name, pattern in _FIELD_RES.items():
        m = pattern.search(chunk)
        if m:
            fields[name] = _decode_string(m.group(1))
    for name in _ARRAY_START_RES:
        items = _extract_array(chunk, name)
        if items:
            fields[name] = items
    if "question" not in fields:
        return None
    if "type" not in fields:
        if "options" not in fields and "steps" not in fields:
            return None
        fields["type"] = "unknown"
    return fields


def parse_fields(text: str):
    """Rebuild question objects field by field; tolerates truncation and junk."""
    body = unfence(text) or text
    m = _QUESTIONS_KEY_RE.search(body)
    region = _match_array(body, m.end() - 1) if m else body
    questions = []
    for chunk in _OBJECT_SPLIT_RE.split(region):
        q = _extract_question(chunk)
        if q is None:
            _log.debug("  regex: dropped chunk without type/question: %.80r", chunk)
            continue
        questions.append(q)
    if not questions:
        raise StageFailed("no question objects recovered")
    return {"questions": questions}


Stage = tuple[str, Callable[[str], object]]

STAGES: list[Stage] = [
    ("direct", parse_direct),
    ("fenced", parse_fenced),
    ("backslash", parse_repaired),
    ("substring", parse_substring),
    ("regex", parse_fields),
]


def recover(text: str, stages: list[Stage] | None = None) -> tuple[object, str]:
    """Run the stages in order and return ``(parsed, stage_name)`` of the first success.

    Raises :class:`RecoveryExhaustedError` when every stage fails.
    """
    text = strip_think_blocks(text or "")
    if len(text) > MAX_TEXT_LENGTH:
        _log.warning("Response is %d chars, truncating to %d", len(text), MAX_TEXT_LENGTH)
        text = text[:MAX_TEXT_LENGTH]
    reasons = []
    for name, stage in stages or STAGES:
        try:
            parsed = stage(text)
        except StageFailed as e:
            reasons.append(f"{name}: {e}")
            _log.debug("  stage %s failed: %s", name, e)
            continue
        _log.info("Recovered response via %s stage", name)
        return parsed, name
    raise RecoveryExhaustedError("all recovery stages failed (" + "; ".join(reasons) + ")")


def parse_lenient(text: str) -> dict:
    """Best-effort JSON object for ``ProviderResponse.json()``; never raises."""
    try:
        parsed, _ = recover(text)
    except RecoveryExhaustedError:
        return {}
    return parsed if isinstance(parsed, dict) else {"items": parsed}
