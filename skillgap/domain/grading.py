from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from ..infrastructure.exceptions import NoGradableQuestionsError
from .proficiency import ProficiencyLevel, percentage
from .questions import Question, answer_key

ADVANCED_THRESHOLD = 90
INTERMEDIATE_THRESHOLD = 70


@dataclass(slots=True)
class GradeResult:
    score: int
    max_score: int
    percentage: int
    calculated_level: str
    correct_keys: list[str] = field(default_factory=list)


def calculate_level(pct: int) -> str:
    """Classify one attempt: >= 90 advanced, >= 70 intermediate, else beginner."""
    if pct >= ADVANCED_THRESHOLD:
        return ProficiencyLevel.ADVANCED.value
    if pct >= INTERMEDIATE_THRESHOLD:
        return ProficiencyLevel.INTERMEDIATE.value
    return ProficiencyLevel.BEGINNER.value


def grade(questions: Sequence[Question], answers: Mapping[str, str]) -> GradeResult:
    """
    Score an answer set. Unanswered questions are wrong; no partial credit.

    Raises:
        NoGradableQuestionsError: if the questions carry no points at all.
    """
    score = 0
    max_score = 0
    correct: list[str] = []
    for index, q in enumerate(questions):
        key = answer_key(q, index)
        max_score += q.points
        if q.is_correct(answers.get(key)):
            score += q.points
            correct.append(key)

    if max_score == 0:
        raise NoGradableQuestionsError(len(questions))

    pct = percentage(score, max_score)
    return GradeResult(
        score=score,
        max_score=max_score,
        percentage=pct,
        calculated_level=calculate_level(pct),
        correct_keys=correct,
    )
