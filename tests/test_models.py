"""Tests for data models."""
from __future__ import annotations

import base64

import pytest

from quizsmith.models import (
    DEFINITION,
    MULTIPLE_CHOICE,
    PROBLEM_SOLVING,
    Attachment,
    DefinitionQuestion,
    GenerationOptions,
    GenerationRequest,
    GradeResult,
    MultipleChoiceQuestion,
    ProblemSolvingQuestion,
    QuizResult,
)


class TestQuestions:
    def test_type_tags(self):
        assert MultipleChoiceQuestion.type == MULTIPLE_CHOICE
        assert DefinitionQuestion.type == DEFINITION
        assert ProblemSolvingQuestion.type == PROBLEM_SOLVING

    def test_problem_solving_to_dict(self):
        q = ProblemSolvingQuestion("Solve", "Work", correct_answer="42 J", steps=["s1"], id="q-3")
        assert q.to_dict() == {
            "id": "q-3",
            "type": "problem-solving",
            "question": "Solve",
            "explanation": "Work",
            "correctAnswer": "42 J",
            "steps": ["s1"],
        }

    def test_definition_to_dict_has_no_options(self):
        d = DefinitionQuestion("Define X", "E", correct_answer="X is Y").to_dict()
        assert "options" not in d
        assert "steps" not in d


class TestAttachment:
    def test_from_upload(self):
        doc = Attachment.from_upload({"name": "notes.pdf", "type": "application/pdf",
                                      "data": base64.b64encode(b"%PDF-1.4").decode()})
        assert doc.name == "notes.pdf"
        assert doc.data == b"%PDF-1.4"
        assert not doc.is_image

    def test_data_url_prefix_sets_mime_type(self):
        raw = base64.b64encode(b"\x89PNG").decode()
        doc = Attachment.from_upload({"name": "fig.png", "data": f"data:image/png;base64,{raw}"})
        assert doc.mime_type == "image/png"
        assert doc.is_image
        assert doc.data_url() == f"data:image/png;base64,{raw}"

    @pytest.mark.parametrize("data", ["", "not base64!!"])
    def test_bad_data(self, data):
        with pytest.raises(ValueError):
            Attachment.from_upload({"name": "x.pdf", "data": data})


class TestGenerationRequest:
    def test_from_dict(self):
        req = GenerationRequest.from_dict({
            "topic": "Waves",
            "subject": "physics",
            "count": 4,
            "difficulty": "easy",
            "questionTypes": ["definition", "multiple-choice", "definition"],
        })
        assert req.count == 4
        assert req.question_types == ["definition", "multiple-choice"]

    @pytest.mark.parametrize("changes", [
        {"topic": "  "},
        {"count": 2},
        {"count": 41},
        {"count": "5"},
        {"count": True},
        {"difficulty": "extreme"},
        {"questionTypes": []},
        {"questionTypes": ["essay"]},
    ])
    def test_invalid(self, changes):
        body = {"topic": "Waves", "count": 5, "questionTypes": ["multiple-choice"]} | changes
        with pytest.raises(ValueError):
            GenerationRequest.from_dict(body)

    def test_absent_question_types_default_to_multiple_choice(self):
        req = GenerationRequest.from_dict({"topic": "Waves", "count": 3})
        assert req.question_types == [MULTIPLE_CHOICE]
        assert req.question_types == GenerationRequest(topic="Waves").question_types

    @pytest.mark.parametrize("types", ["definition", [1], None])
    def test_question_types_shape(self, types):
        body = {"topic": "Waves", "count": 3, "questionTypes": types}
        if types is None:
            assert GenerationRequest.from_dict(body).question_types == [MULTIPLE_CHOICE]
        else:
            with pytest.raises(ValueError):
                GenerationRequest.from_dict(body)

    def test_for_document(self):
        body = {
            "files": [{"name": "ch1.pdf", "type": "application/pdf", "data": base64.b64encode(b"pdf").decode()}],
            "count": 3,
            "questionTypes": ["problem-solving"],
        }
        req = GenerationRequest.for_document(body)
        assert req.topic == "ch1.pdf"
        assert req.document.data == b"pdf"

    def test_for_document_without_files(self):
        with pytest.raises(ValueError):
            GenerationRequest.for_document({"files": [], "count": 3, "questionTypes": ["definition"]})


class TestGenerationOptions:
    def test_defaults(self):
        opts = GenerationOptions()
        assert opts.temperature == 0.7
        assert not opts.wants_json

    def test_wants_json(self):
        assert GenerationOptions(response_format={"type": "json_object"}).wants_json

    @pytest.mark.parametrize("kwargs", [{"temperature": 1.5}, {"top_p": -0.1}, {"max_output_tokens": 0}])
    def test_out_of_range(self, kwargs):
        with pytest.raises(ValueError):
            GenerationOptions(**kwargs)


class TestResults:
    def test_success_shape_omits_note(self):
        result = QuizResult([DefinitionQuestion("Q", "E", correct_answer="A", id="q-0")])
        assert result.to_dict() == {"questions": [result.questions[0].to_dict()]}
        assert not result.is_fallback

    def test_fallback_shape(self):
        result = QuizResult([], generation_id="mock-1", note="Using mock data")
        assert result.to_dict() == {"questions": [], "generationId": "mock-1", "note": "Using mock data"}
        assert result.is_fallback

    def test_grade_result(self):
        assert GradeResult(80.0, "Good").to_dict() == {"score": 80.0, "feedback": "Good"}
