from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import ClassVar

MULTIPLE_CHOICE = "multiple-choice"
DEFINITION = "definition"
PROBLEM_SOLVING = "problem-solving"

QUESTION_TYPES = (MULTIPLE_CHOICE, DEFINITION, PROBLEM_SOLVING)
DIFFICULTIES = ("easy", "medium", "hard")
OPTION_LABELS = ("A", "B", "C", "D")

MIN_COUNT = 3
MAX_COUNT = 40


@dataclass
class Question:
    question: str
    explanation: str
    id: str = field(default="", kw_only=True)

    type: ClassVar[str] = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "question": self.question,
            "explanation": self.explanation,
        }


@dataclass
class MultipleChoiceQuestion(Question):
    options: list[str]
    correct_answer: str  # A | B | C | D

    type: ClassVar[str] = MULTIPLE_CHOICE

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["options"] = list(self.options)
        d["correctAnswer"] = self.correct_answer
        return d


@dataclass
class DefinitionQuestion(Question):
    correct_answer: str

    type: ClassVar[str] = DEFINITION

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["correctAnswer"] = self.correct_answer
        return d


@dataclass
class ProblemSolvingQuestion(Question):
    correct_answer: str
    steps: list[str] | None = None

    type: ClassVar[str] = PROBLEM_SOLVING

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["correctAnswer"] = self.correct_answer
        if self.steps is not None:
            d["steps"] = list(self.steps)
        return d


@dataclass
class Attachment:
    name: str
    mime_type: str
    data: bytes

    def b64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.b64()}"

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @classmethod
    def from_upload(cls, upload: dict) -> Attachment:
        """Build from ``{"name", "type", "data"}`` where data is base64 (data URL tolerated)."""
        raw = upload.get("data") or ""
        mime_type = upload.get("type") or "application/pdf"
        if raw.startswith("data:"):
            header, _, raw = raw.partition(",")
            mime_type = header[5:].split(";")[0] or mime_type
        try:
            data = base64.b64decode(raw, validate=True)
        except ValueError as e:
            raise ValueError(f"file data is not valid base64: {e}") from e
        if not data:
            raise ValueError("file data is empty")
        return cls(name=upload.get("name") or "document", mime_type=mime_type, data=data)


def _question_types(body: dict) -> list:
    """``questionTypes`` from a request body; absent means multiple-choice only."""
    types = body.get("questionTypes")
    if types is None:
        return [MULTIPLE_CHOICE]
    if not isinstance(types, list):
        raise ValueError("questionTypes must be a list")
    return list(types)


@dataclass
class GenerationRequest:
    topic: str
    subject: str = "physics"
    count: int = 5
    difficulty: str = "medium"
    question_types: list[str] = field(default_factory=lambda: [MULTIPLE_CHOICE])
    document: Attachment | None = None

    def __post_init__(self):
        if not self.topic or not self.topic.strip():
            raise ValueError("topic is required")
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise ValueError(f"count must be an integer (got {self.count!r})")
        if not MIN_COUNT <= self.count <= MAX_COUNT:
            raise ValueError(f"count must be between {MIN_COUNT} and {MAX_COUNT} (got {self.count})")
        if self.difficulty not in DIFFICULTIES:
            raise ValueError(f"difficulty must be one of {', '.join(DIFFICULTIES)}")
        if not self.question_types:
            raise ValueError("at least one question type is required")
        unknown = [t for t in self.question_types if t not in QUESTION_TYPES]
        if unknown:
            raise ValueError(f"unknown question types: {', '.join(map(str, unknown))}")
        # de-duplicate, keep caller order
        self.question_types = list(dict.fromkeys(self.question_types))

    @classmethod
    def from_dict(cls, body: dict) -> GenerationRequest:
        return cls(
            topic=body.get("topic", ""),
            subject=body.get("subject") or "physics",
            count=body.get("count", 5),
            difficulty=body.get("difficulty") or "medium",
            question_types=_question_types(body),
        )

    @classmethod
    def for_document(cls, body: dict) -> GenerationRequest:
        files = body.get("files") or []
        if not files:
            raise ValueError("at least one file is required")
        doc = Attachment.from_upload(files[0])
        return cls(
            topic=doc.name,
            subject="the provided document",
            count=body.get("count", 5),
            question_types=_question_types(body),
            document=doc,
        )


@dataclass
class GenerationOptions:
    temperature: float = 0.7
    top_p: float = 0.95
    max_output_tokens: int = 8192
    title: str = "Science Quiz Generator"
    model: str = ""
    file: Attachment | None = None
    response_schema: dict | None = None
    response_format: dict | None = None

    def __post_init__(self):
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError(f"temperature must be in [0, 1] (got {self.temperature})")
        if not 0.0 <= self.top_p <= 1.0:
            raise ValueError(f"top_p must be in [0, 1] (got {self.top_p})")
        if self.max_output_tokens <= 0:
            raise ValueError(f"max_output_tokens must be positive (got {self.max_output_tokens})")

    @property
    def wants_json(self) -> bool:
        return bool(self.response_format) and self.response_format.get("type") == "json_object"


@dataclass
class QuizResult:
    questions: list[Question]
    generation_id: str | None = None
    note: str | None = None
    stage: str | None = None  # recovery stage that produced the batch, None for pure fallback

    @property
    def is_fallback(self) -> bool:
        return self.note is not None

    def to_dict(self) -> dict:
        d: dict = {"questions": [q.to_dict() for q in self.questions]}
        if self.generation_id is not None:
            d["generationId"] = self.generation_id
        if self.note is not None:
            d["note"] = self.note
        return d


@dataclass
class GradeResult:
    score: float
    feedback: str

    def to_dict(self) -> dict:
        return {"score": self.score, "feedback": self.feedback}
