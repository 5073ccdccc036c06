"""Deterministic placeholder questions used when generation or recovery fails."""
from __future__ import annotations

from quizsmith.models import (
    DEFINITION,
    MULTIPLE_CHOICE,
    DefinitionQuestion,
    GenerationRequest,
    MultipleChoiceQuestion,
    ProblemSolvingQuestion,
    Question,
)


def _mock_question(qtype: str, topic: str, subject: str, difficulty: str) -> Question:
    if qtype == MULTIPLE_CHOICE:
        return MultipleChoiceQuestion(
            question=f"What is a key concept in {topic} in the field of {subject}?",
            explanation=(
                f"This is an explanation of the correct answer for this {difficulty} "
                f"question about {topic} in {subject}."
            ),
            options=[
                "First possible answer",
                "Second possible answer",
                "Third possible answer",
                "Fourth possible answer",
            ],
            correct_answer="A",
        )
    if qtype == DEFINITION:
        return DefinitionQuestion(
            question=f"Define the following term related to {topic} in {subject}:",
            explanation=f"This is an explanation of why this definition is important in {topic} for {subject} studies.",
            correct_answer=f"This is the definition of a term related to {topic} in the field of {subject}.",
        )
    return ProblemSolvingQuestion(
        question=f"Solve this {difficulty} problem related to {topic} in {subject}:",
        explanation=f"This is an explanation of the problem-solving approach for {topic} in the context of {subject}.",
        correct_answer="This is the solution to the problem.",
        steps=[
            "Step 1 of solving the problem",
            "Step 2 of solving the problem",
            "Step 3 of solving the problem",
        ],
    )


def generate_mock_questions(request: GenerationRequest, count: int | None = None, start: int = 0) -> list[Question]:
    """Produce *count* (default ``request.count``) placeholder questions.

    Types cycle round-robin through ``request.question_types`` starting at
    position *start*, so a partial batch can be topped up where it left off.
    Ids continue from ``q-{start}``.
    """
    count = request.count if count is None else count
    types = request.question_types
    topic = request.topic.strip()
    questions = []
    for i in range(start, start + count):
        q = _mock_question(types[i % len(types)], topic, request.subject, request.difficulty)
        q.id = f"q-{i}"
        questions.append(q)
    return questions
