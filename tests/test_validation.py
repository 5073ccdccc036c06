"""Tests for schema validation of recovered question data."""
from __future__ import annotations

import pytest

from conftest import definition, mc, problem
from quizsmith.errors import InvalidResponseShape, SchemaValidationError
from quizsmith.models import DefinitionQuestion, MultipleChoiceQuestion, ProblemSolvingQuestion
from quizsmith.validation import check_question, validate


class TestValidateBatch:
    def test_one_of_each_type(self):
        questions = validate({"questions": [mc(), definition(), problem()]})
        assert [type(q) for q in questions] == [MultipleChoiceQuestion, DefinitionQuestion, ProblemSolvingQuestion]
        assert [q.id for q in questions] == ["q-0", "q-1", "q-2"]

    def test_scenario_a_shape(self):
        (q,) = validate({"questions": [mc()]})
        assert q.to_dict() == {
            "id": "q-0",
            "type": "multiple-choice",
            "question": "Q",
            "options": ["a", "b", "c", "d"],
            "correctAnswer": "A",
            "explanation": "E",
        }

    def test_ids_follow_validated_order(self):
        questions = validate({"questions": [mc(options=["a", "b", "c"]), definition(question="kept")]})
        assert len(questions) == 1
        assert questions[0].id == "q-0"
        assert questions[0].question == "kept"

    @pytest.mark.parametrize("candidate", [{}, {"items": []}, [], "text", None])
    def test_missing_questions_key(self, candidate):
        with pytest.raises(InvalidResponseShape):
            validate(candidate)

    def test_questions_not_an_array(self):
        with pytest.raises(InvalidResponseShape):
            validate({"questions": {"0": mc()}})

    def test_zero_survivors_is_batch_failure(self):
        with pytest.raises(SchemaValidationError):
            validate({"questions": [mc(options=["a", "b"]), {"type": "definition"}]})

    def test_empty_array_is_batch_failure(self):
        with pytest.raises(SchemaValidationError):
            validate({"questions": []})


class TestMultipleChoice:
    @pytest.mark.parametrize("count", [0, 3, 5])
    def test_wrong_option_count_is_dropped(self, count):
        q, reason = check_question(mc(options=[str(i) for i in range(count)]))
        assert q is None
        assert "4 options" in reason or "options" in reason

    @pytest.mark.parametrize("answer, label", [
        ("A", "A"),
        ("b", "B"),
        ("C)", "C"),
        ("(d)", "D"),
        ("Option B", "B"),
        ("c.", "C"),
        (2, "C"),
        ("gamma", "C"),
    ])
    def test_answer_normalised_to_label(self, answer, label):
        q, _ = check_question(mc(options=["alpha", "beta", "gamma", "delta"], answer=answer))
        assert q.correct_answer == label

    @pytest.mark.parametrize("answer", ["E", 4, -1, True, None, "none of these"])
    def test_unusable_answer(self, answer):
        q, reason = check_question(mc(answer=answer))
        assert q is None
        assert "correctAnswer" in reason

    def test_options_keyed_by_label(self):
        data = mc()
        data["options"] = {"A": "w", "B": "x", "C": "y", "D": "z"}
        q, _ = check_question(data)
        assert q.options == ["w", "x", "y", "z"]

    def test_numeric_options_coerced(self):
        q, _ = check_question(mc(options=[1, 2.5, 3, 4]))
        assert q.options == ["1", "2.5", "3", "4"]

    def test_options_with_non_string_item(self):
        q, reason = check_question(mc(options=["a", {"x": 1}, "c", "d"]))
        assert q is None
        assert "options" in reason


class TestRequiredText:
    @pytest.mark.parametrize("field", ["question", "explanation"])
    def test_blank_field_drops_question(self, field):
        data = definition()
        data[field] = "   "
        q, reason = check_question(data)
        assert q is None
        assert field in reason

    def test_missing_correct_answer(self):
        data = definition()
        del data["correctAnswer"]
        q, reason = check_question(data)
        assert q is None
        assert "correctAnswer" in reason

    def test_explanation_list_is_joined(self):
        q, _ = check_question(definition(explanation=["First.", "Second."]))
        assert q.explanation == "First.\n\nSecond."

    def test_numeric_answer_becomes_string(self):
        q, _ = check_question(problem(answer=42))
        assert q.correct_answer == "42"


class TestTypeResolution:
    def test_explicit_tag_wins(self):
        q, _ = check_question(definition() | {"options": ["a", "b", "c", "d"]})
        assert isinstance(q, DefinitionQuestion)

    @pytest.mark.parametrize("tag", ["multiple_choice", "Multiple Choice", "MCQ"])
    def test_tag_aliases(self, tag):
        q, _ = check_question(mc() | {"type": tag})
        assert isinstance(q, MultipleChoiceQuestion)

    def test_unknown_with_options_is_multiple_choice(self):
        q, _ = check_question(mc() | {"type": "unknown"})
        assert isinstance(q, MultipleChoiceQuestion)

    def test_unknown_with_steps_is_problem_solving(self):
        q, _ = check_question(problem() | {"type": "unknown"})
        assert isinstance(q, ProblemSolvingQuestion)

    def test_ambiguous_shape_is_dropped(self):
        q, reason = check_question(definition() | {"type": "unknown"})
        assert q is None
        assert "type" in reason

    def test_not_an_object(self):
        q, reason = check_question(["Q"])
        assert q is None
        assert "object" in reason


class TestProblemSolving:
    def test_steps_optional(self):
        data = problem()
        del data["steps"]
        q, _ = check_question(data)
        assert q.steps is None
        assert "steps" not in q.to_dict()

    def test_numeric_steps_coerced(self):
        q, _ = check_question(problem(steps=["Use F = ma", 9.8]))
        assert q.steps == ["Use F = ma", "9.8"]

    def test_steps_must_be_list(self):
        q, reason = check_question(problem() | {"steps": "Step 1, Step 2"})
        assert q is None
        assert "steps" in reason
