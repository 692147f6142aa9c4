"""
Question variants, resolved once when a question set is loaded.

Each ``question_type`` owns its own payload shape and its own correctness
rule. Catalog questions come from ``assessment_questions`` rows; generated
questions come from the question generator and are stored verbatim as a
snapshot on the adaptive assessment.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..infrastructure.exceptions import InvalidQuestionDataError
from ..infrastructure.models import AssessmentQuestionORM

CORRECT_TOKEN = "correct"
INCORRECT_TOKEN = "incorrect"


class TestCase(BaseModel):
    __test__ = False  # not a pytest class

    input: Any = None
    expected: Any = None


class QuestionBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    question_text: str = Field(..., min_length=1)
    points: int = Field(1, ge=1)
    order_index: int = 0
    explanation: str | None = None

    @field_validator("points", mode="before")
    @classmethod
    def default_points(cls, v):
        return 1 if v is None else v

    def is_correct(self, answer: str | None) -> bool:
        raise NotImplementedError


class _ChoiceQuestion(QuestionBase):
    options: list[str] = Field(..., min_length=1)
    correct_answer: str

    def is_correct(self, answer: str | None) -> bool:
        return answer is not None and answer == self.correct_answer


class McqQuestion(_ChoiceQuestion):
    question_type: Literal["mcq"] = "mcq"


class CodeOutputQuestion(_ChoiceQuestion):
    question_type: Literal["code_output"] = "code_output"


class CodeChallengeQuestion(QuestionBase):
    question_type: Literal["code_challenge"] = "code_challenge"
    code_template: str | None = None
    expected_output: str | None = None
    test_cases: list[TestCase] = Field(default_factory=list)
    language: str = "javascript"
    correct_answer: str | None = None

    def is_correct(self, answer: str | None) -> bool:
        # Only the checker's verdict token scores
        return answer == CORRECT_TOKEN


Question = Annotated[
    McqQuestion | CodeOutputQuestion | CodeChallengeQuestion,
    Field(discriminator="question_type"),
]

_question_adapter: TypeAdapter[Question] = TypeAdapter(Question)
_question_list_adapter: TypeAdapter[list[Question]] = TypeAdapter(list[Question])


def parse_question(data: dict[str, Any]) -> Question:
    """Validate one raw question mapping into its variant (raises pydantic.ValidationError)."""
    return _question_adapter.validate_python(data)


def parse_questions(data: Sequence[dict[str, Any]]) -> list[Question]:
    return _question_list_adapter.validate_python(list(data))


def dump_questions(questions: Iterable[Question]) -> list[dict[str, Any]]:
    return [q.model_dump(mode="json", exclude_none=True) for q in questions]


def answer_key(question: Question, index: int) -> str:
    """Persisted questions answer by id; generated ones by position."""
    return str(question.id) if question.id is not None else str(index)


def question_from_row(row: AssessmentQuestionORM) -> Question:
    """Build the variant for a catalog row; ``options`` holds the variant payload."""
    payload = row.options
    data: dict[str, Any] = {
        "id": row.id,
        "question_type": row.question_type,
        "question_text": row.question_text,
        "points": row.points,
        "order_index": row.order_index,
        "correct_answer": row.correct_answer,
    }
    if isinstance(payload, list):
        data["options"] = payload
    elif isinstance(payload, dict):
        data.update({k: v for k, v in payload.items() if k not in data})
    return parse_question(data)


def questions_from_rows(rows: Iterable[AssessmentQuestionORM]) -> list[Question]:
    questions: list[Question] = []
    for row in sorted(rows, key=lambda r: (r.order_index, r.id)):
        try:
            questions.append(question_from_row(row))
        except PydanticValidationError as e:
            raise InvalidQuestionDataError(row.id, str(e.errors()[0]["msg"])) from e
    return questions


def row_payload(question: Question) -> Any:
    """Inverse of ``question_from_row`` for the ``options`` column."""
    if isinstance(question, CodeChallengeQuestion):
        return question.model_dump(
            mode="json",
            include={"code_template", "expected_output", "test_cases", "language", "explanation"},
            exclude_none=True,
        )
    return list(question.options)
