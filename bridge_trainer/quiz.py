"""Training-module content and quiz marking.

Modules arrive from the content store as JSON:
``{id, title, description, category, subcategory, blocks[]}``. Only the
parts needed to present and mark quizzes are modelled; other block types are
kept as opaque content.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class QuestionType(StrEnum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    MULTI_SELECT = "multi-select"
    TEXT_INPUT = "text-input"


class BlockType(StrEnum):
    HEADING = "heading"
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    PDF = "pdf"
    LINK = "link"
    QUIZ = "quiz"
    PAGE_BREAK = "page-break"


@dataclass(frozen=True, slots=True)
class QuizQuestion:
    question_id: str
    question: str
    qtype: QuestionType
    options: tuple[str, ...] = ()
    correct_answer: int | tuple[int, ...] | None = None  # option index(es); unused for text-input
    keywords: tuple[str, ...] = ()
    explanation: str = ""


@dataclass(frozen=True, slots=True)
class ContentBlock:
    block_id: str
    btype: BlockType
    content: str = ""
    questions: tuple[QuizQuestion, ...] = ()


@dataclass(frozen=True, slots=True)
class TrainingModule:
    module_id: str
    title: str
    description: str
    category: str
    subcategory: str
    blocks: tuple[ContentBlock, ...]

    def quiz_questions(self) -> tuple[QuizQuestion, ...]:
        out: list[QuizQuestion] = []
        for block in self.blocks:
            out.extend(block.questions)
        return tuple(out)

    def pages(self) -> list[list[ContentBlock]]:
        """Blocks split on page-break blocks (the breaks themselves dropped)."""
        pages: list[list[ContentBlock]] = [[]]
        for block in self.blocks:
            if block.btype is BlockType.PAGE_BREAK:
                pages.append([])
            else:
                pages[-1].append(block)
        return [p for p in pages if p]


@dataclass(frozen=True, slots=True)
class QuizResult:
    correct: int
    total: int
    per_question: tuple[bool, ...]

    @property
    def ratio(self) -> float:
        return 0.0 if self.total == 0 else self.correct / self.total


Answer = int | tuple[int, ...] | str | None


def grade_question(question: QuizQuestion, answer: Answer) -> bool:
    if answer is None:
        return False
    if question.qtype is QuestionType.TEXT_INPUT:
        normalized = str(answer).strip().lower()
        return any(kw.lower() in normalized for kw in question.keywords)
    if question.qtype is QuestionType.MULTI_SELECT:
        expected = question.correct_answer
        expected_set = set(expected) if isinstance(expected, tuple) else {expected}
        given = set(answer) if isinstance(answer, tuple) else {answer}
        return given == expected_set
    return answer == question.correct_answer


def grade_quiz(questions: tuple[QuizQuestion, ...], answers: dict[str, Answer]) -> QuizResult:
    marks = tuple(grade_question(q, answers.get(q.question_id)) for q in questions)
    return QuizResult(correct=sum(marks), total=len(marks), per_question=marks)


def _require(data: dict[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise ValueError(f"{where}: missing {key!r}")
    return data[key]


def _option_index(raw: Any, qid: str, where: str) -> int:
    # Content-store answers may arrive as numbers or numeric strings.
    if isinstance(raw, bool):
        raise ValueError(f"{where}: question {qid!r} has a non-numeric correctAnswer {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    raise ValueError(f"{where}: question {qid!r} has a non-numeric correctAnswer {raw!r}")


def _question_from_dict(data: dict[str, Any], where: str) -> QuizQuestion:
    qid = str(_require(data, "id", where))
    try:
        qtype = QuestionType(str(_require(data, "type", where)))
    except ValueError:
        raise ValueError(f"{where}: unknown question type {data.get('type')!r}") from None

    options = tuple(str(o) for o in data.get("options") or ())
    if qtype is QuestionType.TRUE_FALSE and not options:
        options = ("True", "False")

    raw_correct = data.get("correctAnswer")
    correct: int | tuple[int, ...] | None
    if qtype is QuestionType.TEXT_INPUT:
        correct = None
    elif isinstance(raw_correct, list):
        correct = tuple(_option_index(v, qid, where) for v in raw_correct)
    elif raw_correct is None:
        raise ValueError(f"{where}: question {qid!r} has no correctAnswer")
    else:
        correct = _option_index(raw_correct, qid, where)

    return QuizQuestion(
        question_id=qid,
        question=str(_require(data, "question", where)),
        qtype=qtype,
        options=options,
        correct_answer=correct,
        keywords=tuple(str(k) for k in data.get("keywords") or ()),
        explanation=str(data.get("explanation") or ""),
    )


def module_from_dict(data: dict[str, Any]) -> TrainingModule:
    """Parse one module record from the content store."""
    if not isinstance(data, dict):
        raise ValueError("module must be a JSON object")
    module_id = str(_require(data, "id", "module"))
    where = f"module {module_id!r}"

    blocks: list[ContentBlock] = []
    for idx, raw in enumerate(data.get("blocks") or ()):
        bwhere = f"{where} block {idx}"
        try:
            btype = BlockType(str(_require(raw, "type", bwhere)))
        except ValueError:
            raise ValueError(f"{bwhere}: unknown block type {raw.get('type')!r}") from None
        questions: tuple[QuizQuestion, ...] = ()
        if btype is BlockType.QUIZ:
            questions = tuple(
                _question_from_dict(q, f"{bwhere} question {qi}")
                for qi, q in enumerate(raw.get("questions") or ())
            )
        blocks.append(
            ContentBlock(
                block_id=str(raw.get("id", f"block-{idx}")),
                btype=btype,
                content=str(raw.get("content") or ""),
                questions=questions,
            )
        )

    return TrainingModule(
        module_id=module_id,
        title=str(_require(data, "title", where)),
        description=str(data.get("description") or ""),
        category=str(data.get("category") or ""),
        subcategory=str(data.get("subcategory") or ""),
        blocks=tuple(blocks),
    )


SAMPLE_MODULE: dict[str, Any] = {
    "id": "colregs-lights-basics",
    "title": "COLREGS: Lights and Shapes",
    "description": "Recognising vessels by their lights.",
    "category": "colregs",
    "subcategory": "lights",
    "blocks": [
        {"id": "h1", "type": "heading", "content": "Lights and Shapes"},
        {"id": "t1", "type": "text", "content": "Rule 20 onwards describes the lights a vessel must show."},
        {"id": "pb1", "type": "page-break"},
        {
            "id": "q1",
            "type": "quiz",
            "questions": [
                {
                    "id": "masthead",
                    "type": "multiple-choice",
                    "question": "What colour is a masthead light?",
                    "options": ["Red", "Green", "White", "Yellow"],
                    "correctAnswer": 2,
                },
                {
                    "id": "nuc",
                    "type": "true-false",
                    "question": "A vessel not under command shows two all-round red lights.",
                    "correctAnswer": 0,
                },
                {
                    "id": "sidelights",
                    "type": "multi-select",
                    "question": "Which colours are used for sidelights?",
                    "options": ["Red", "Green", "White", "Blue"],
                    "correctAnswer": [0, 1],
                },
                {
                    "id": "sternlight",
                    "type": "text-input",
                    "question": "Over what arc does a sternlight show?",
                    "keywords": ["135", "twelve points"],
                    "explanation": "135 degrees, 67.5 either side of dead astern.",
                },
            ],
        },
    ],
}
