"""Tests for deterministic placeholder questions."""
from __future__ import annotations

from quizsmith.fallback import generate_mock_questions
from quizsmith.models import DEFINITION, MULTIPLE_CHOICE, PROBLEM_SOLVING


class TestMockQuestions:
    def test_count_and_round_robin(self, mixed_request):
        questions = generate_mock_questions(mixed_request)
        assert len(questions) == 5
        assert [q.type for q in questions] == [
            MULTIPLE_CHOICE, DEFINITION, PROBLEM_SOLVING, MULTIPLE_CHOICE, DEFINITION,
        ]
        assert [q.id for q in questions] == [f"q-{i}" for i in range(5)]

    def test_deterministic(self, mixed_request):
        first = [q.to_dict() for q in generate_mock_questions(mixed_request)]
        second = [q.to_dict() for q in generate_mock_questions(mixed_request)]
        assert first == second

    def test_text_references_request(self, mixed_request):
        mc, definition, problem = generate_mock_questions(mixed_request)[:3]
        assert "Energetics" in mc.question and "chemistry" in mc.question
        assert "hard" in mc.explanation
        assert len(mc.options) == 4 and mc.correct_answer == "A"
        assert "Energetics" in definition.correct_answer
        assert "hard" in problem.question
        assert len(problem.steps) == 3

    def test_top_up_continues_cycle(self, mixed_request):
        questions = generate_mock_questions(mixed_request, count=2, start=3)
        assert [q.type for q in questions] == [MULTIPLE_CHOICE, DEFINITION]
        assert [q.id for q in questions] == ["q-3", "q-4"]

    def test_every_question_is_well_formed(self, mixed_request):
        for q in generate_mock_questions(mixed_request):
            d = q.to_dict()
            assert d["question"] and d["explanation"] and d["correctAnswer"]
