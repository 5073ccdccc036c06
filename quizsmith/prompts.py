"""Prompt templates for quiz generation and answer grading."""
from __future__ import annotations

import json

from quizsmith.models import DEFINITION, MULTIPLE_CHOICE, PROBLEM_SOLVING, GenerationRequest

SCIENCE_SYSTEM_PROMPT = """\
You are an experienced IB Diploma science teacher (Chemistry, Physics and \
Biology) who writes quiz questions that double as study material. Your \
explanations are methodical and step-by-step: they say WHY a principle holds, \
not only WHAT it is, and they tie each idea back to the wider curriculum.

When additional context about the topic is supplied, use its facts and \
terminology to make the questions accurate and curriculum-aligned, but write \
your own questions rather than copying sentences from it.

{formatting_rules}"""

DOCUMENT_SYSTEM_PROMPT = """\
You are a teacher. Your job is to read the attached document and write a quiz \
that tests understanding of its key concepts and information. Every question \
must be answerable from the document.

{formatting_rules}"""

FORMATTING_RULES = """\
FORMATTING RULES (mandatory):
1. Write every formula, equation, variable and unit expression in LaTeX inside \
dollar signs: $...$ inline, $$...$$ for displayed equations.
2. ALWAYS put braces around subscripts and superscripts: $v_{0}$ not $v_0$, \
$10^{-3}$ not $10^-3$, $x^{2}$ not $x^2$.
3. Use LaTeX commands for functions and Greek letters: $\\cos(\\theta)$ not \
$cos(theta)$, $\\alpha$ not $alpha$, $\\Delta H$ not $Delta H$.
4. Degrees are $30^{\\circ}$, never $30\\circ$.
5. Separate an angle from a following variable: $45^{\\circ} \\cdot v_{0}$.
6. Use \\text{} for words inside math: $v_{\\text{total}}$.
7. Inside JSON strings every LaTeX backslash MUST be doubled: write \
"\\\\frac{1}{2}" to produce \\frac{1}{2}."""

TYPE_SPECS = {
    MULTIPLE_CHOICE: """\
- multiple-choice: exactly 4 options in "options" (they are shown as A, B, C, D). \
All options plausible, exactly one correct, distractors built from common \
misconceptions. "correctAnswer" is the letter A, B, C or D.""",
    DEFINITION: """\
- definition: ask for a clearly named term. "correctAnswer" is a comprehensive \
definition covering the key characteristics and properties.""",
    PROBLEM_SOLVING: """\
- problem-solving: a problem that needs calculation or analysis. \
"correctAnswer" is the final result with units; "steps" is an array of strings, \
one per solution step.""",
}

WORKED_EXAMPLES = {
    MULTIPLE_CHOICE: {
        "type": MULTIPLE_CHOICE,
        "question": "A $2$ kg trolley moves at $v = 5$ m/s. What is its kinetic energy?",
        "options": ["$25$ J", "$50$ J", "$10$ J", "$5$ J"],
        "correctAnswer": "A",
        "explanation": (
            "**Correct Answer: A**\n\n"
            "**Step 1: Identify the principle**\nKinetic energy is $E_{k} = \\frac{1}{2}mv^{2}$.\n\n"
            "**Step 2: Substitute**\n$E_{k} = \\frac{1}{2} \\times 2 \\times 5^{2}$.\n\n"
            "**Step 3: Calculate**\n$E_{k} = 25$ J.\n\n"
            "**Step 4: Check the options**\n"
            "A ($25$ J) matches the calculation.\n"
            "B ($50$ J) forgets the factor $\\frac{1}{2}$.\n"
            "C ($10$ J) uses $v$ instead of $v^{2}$.\n"
            "D ($5$ J) confuses energy with speed.\n\n"
            "**Key Takeaway:**\nKinetic energy grows with the square of speed."
        ),
    },
    DEFINITION: {
        "type": DEFINITION,
        "question": "Define the term enthalpy.",
        "correctAnswer": (
            "Enthalpy $H$ is the sum of a system's internal energy and the product of its "
            "pressure and volume, $H = U + PV$; at constant pressure its change equals the heat transferred."
        ),
        "explanation": (
            "**Correct Definition:** $H = U + PV$.\n\n"
            "**Step 1: The quantities**\n$U$ is internal energy, $P$ pressure, $V$ volume.\n\n"
            "**Step 2: Why it is useful**\nAt constant pressure $\\Delta H = q_{p}$, the heat exchanged.\n\n"
            "**Step 3: Standard enthalpy of formation**\n$\\Delta H_{f}^{\\circ}$ refers to forming one mole "
            "of a compound from its elements in their standard states.\n\n"
            "**Key Takeaway:**\nEnthalpy is a state function for tracking heat at constant pressure."
        ),
    },
    PROBLEM_SOLVING: {
        "type": PROBLEM_SOLVING,
        "question": "Calculate the energy equivalent of $m = 5$ kg of mass.",
        "correctAnswer": "$E = 4.5 \\times 10^{17}$ J",
        "steps": [
            "Step 1: Use $E = mc^{2}$",
            "Step 2: $c = 3 \\times 10^{8}$ m/s, so $c^{2} = 9 \\times 10^{16}$ m$^{2}$/s$^{2}$",
            "Step 3: $E = 5 \\times 9 \\times 10^{16} = 4.5 \\times 10^{17}$ J",
        ],
        "explanation": (
            "**Correct Answer: $E = 4.5 \\times 10^{17}$ J**\n\n"
            "**Step 1: The principle**\nMass-energy equivalence, $E = mc^{2}$.\n\n"
            "**Step 2: Square the speed of light**\n$c^{2} = 9 \\times 10^{16}$ m$^{2}$/s$^{2}$.\n\n"
            "**Step 3: Multiply by the mass**\n$E = 4.5 \\times 10^{17}$ J.\n\n"
            "**Step 4: Check the units**\nkg $\\cdot$ m$^{2}$/s$^{2}$ = J.\n\n"
            "**Common mistake:** forgetting to square $c$.\n\n"
            "**Key Takeaway:**\nA small mass corresponds to an enormous energy."
        ),
    },
}

EXPLANATION_RULES = """\
EXPLANATION REQUIREMENTS (all question types):
1. Start by stating the correct answer.
2. Explain WHY it is correct, in NUMBERED STEPS (at least 5).
3. In each step name the principle applied and give the formula in LaTeX.
4. For multiple-choice, explain why each incorrect option is wrong.
5. For problem-solving, show every intermediate calculation and check the units.
6. End with a "Key Takeaway" section summarising the main learning point."""

OUTPUT_RULES = """\
OUTPUT RULES:
1. Respond with a single JSON object with a "questions" array and NOTHING else.
2. No prose before or after the JSON, no markdown code fences, no backticks.
3. Include exactly {count} questions in the array.
4. Every question has all fields required by its type.
5. All LaTeX backslashes are escaped for JSON (\\\\ inside strings)."""

QUIZ_PROMPT = """\
Generate a quiz on the topic of "{topic}" for IB DP students in the subject of {subject}.
The quiz must have exactly {count} questions at {difficulty} difficulty.
Use only these question types: {types}.
{context_section}
QUESTION TYPES:
{type_specs}

{explanation_rules}

RESPONSE FORMAT (one worked example per requested type):
{example}

{output_rules}
"""

DOCUMENT_QUIZ_PROMPT = """\
Generate a quiz based on the content of the attached document "{name}".
The quiz must have exactly {count} questions.
Use only these question types: {types}.

QUESTION TYPES:
{type_specs}

{explanation_rules}

RESPONSE FORMAT (one worked example per requested type):
{example}

{output_rules}
"""

GRADING_SYSTEM_PROMPT = """\
You are a grading assistant. Evaluate a student's answer to a question.
If grading criteria or an ideal answer are provided, they are the primary basis \
for your evaluation.
Give a numerical score from 0 to 100 inclusive, where 0 is completely wrong and \
100 is a perfect answer, and concise feedback explaining the score: what is \
correct and what to improve.
Respond with JSON only: {"score": number, "feedback": "string"}"""

GRADING_PROMPT = """\
Grade the following answer.

Question:
{question}

Student's answer:
{answer}
{criteria_section}
Return the score and feedback in the specified JSON format.
"""


def _example(question_types: list[str]) -> str:
    return json.dumps(
        {"questions": [WORKED_EXAMPLES[t] for t in question_types]},
        indent=2,
        ensure_ascii=False,
    )


def _context_section(context: str) -> str:
    if not context.strip():
        return ""
    return f"\nADDITIONAL CONTEXT:\n{context.strip()}\n"


def build_prompts(request: GenerationRequest, context: str = "") -> tuple[str, str]:
    """Return ``(system_prompt, task_prompt)`` for a generation request.

    Requests carrying a document get the document-grounded variant, which
    leaves out subject, difficulty and search context.
    """
    types = request.question_types
    shared = {
        "count": request.count,
        "types": ", ".join(types),
        "type_specs": "\n".join(TYPE_SPECS[t] for t in types),
        "explanation_rules": EXPLANATION_RULES,
        "example": _example(types),
        "output_rules": OUTPUT_RULES.format(count=request.count),
    }
    if request.document is not None:
        system = DOCUMENT_SYSTEM_PROMPT.format(formatting_rules=FORMATTING_RULES)
        task = DOCUMENT_QUIZ_PROMPT.format(name=request.document.name, **shared)
        return system, task

    system = SCIENCE_SYSTEM_PROMPT.format(formatting_rules=FORMATTING_RULES)
    task = QUIZ_PROMPT.format(
        topic=request.topic.strip(),
        subject=request.subject,
        difficulty=request.difficulty,
        context_section=_context_section(context),
        **shared,
    )
    return system, task


def build_grading_prompts(question: str, user_answer: str, grading_criteria: str = "") -> tuple[str, str]:
    criteria_section = ""
    if grading_criteria and grading_criteria.strip():
        criteria_section = (
            "\nReference for grading (an ideal answer, key points or criteria):\n"
            f"{grading_criteria.strip()}\n"
        )
    task = GRADING_PROMPT.format(
        question=question.strip(),
        answer=user_answer.strip(),
        criteria_section=criteria_section,
    )
    return GRADING_SYSTEM_PROMPT, task
