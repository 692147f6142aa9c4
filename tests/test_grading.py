import pytest
from pydantic import ValidationError as PydanticValidationError

from skillgap.domain.escalation import decide_escalation
from skillgap.domain.grading import calculate_level, grade
from skillgap.domain.questions import (
    CodeChallengeQuestion,
    McqQuestion,
    answer_key,
    parse_question,
    parse_questions,
    row_payload,
)
from skillgap.infrastructure.exceptions import NoGradableQuestionsError


def mcq(id_, correct="b", points=1):
    return McqQuestion(
        id=id_, question_text=f"Question {id_}", options=["a", "b", "c"], correct_answer=correct, points=points
    )


def test_grade_weights_points():
    questions = [mcq(1, points=1), mcq(2, points=2), mcq(3, points=3)]
    result = grade(questions, {"1": "b", "2": "a", "3": "b"})
    assert (result.score, result.max_score, result.percentage) == (4, 6, 67)
    assert result.calculated_level == "beginner"
    assert result.correct_keys == ["1", "3"]


def test_unanswered_counts_as_wrong():
    result = grade([mcq(1), mcq(2)], {"1": "b"})
    assert result.percentage == 50


def test_answers_compare_exactly():
    assert grade([mcq(1)], {"1": " b"}).score == 0
    assert grade([mcq(1, correct="B")], {"1": "b"}).score == 0


def test_level_thresholds():
    assert calculate_level(100) == "advanced"
    assert calculate_level(90) == "advanced"
    assert calculate_level(89) == "intermediate"
    assert calculate_level(70) == "intermediate"
    assert calculate_level(69) == "beginner"
    assert calculate_level(0) == "beginner"


def test_nothing_to_grade():
    with pytest.raises(NoGradableQuestionsError):
        grade([], {})


def test_generated_questions_answer_by_position():
    questions = parse_questions(
        [
            {"question_type": "mcq", "question_text": "One", "options": ["x", "y"], "correct_answer": "x", "points": 1},
            {"question_type": "code_output", "question_text": "Two", "options": ["1", "2"], "correct_answer": "2", "points": 1},
        ]
    )
    assert [answer_key(q, i) for i, q in enumerate(questions)] == ["0", "1"]
    assert grade(questions, {"0": "x", "1": "2"}).percentage == 100


def test_code_challenge_scores_only_on_verdict_token():
    q = CodeChallengeQuestion(id=7, question_text="Write sum", points=3)
    assert grade([q], {"7": "correct"}).score == 3
    assert grade([q], {"7": "incorrect"}).score == 0
    assert grade([q], {"7": "function sum(a, b) { return a + b }"}).score == 0


def test_question_variants_are_validated():
    with pytest.raises(PydanticValidationError):
        parse_question({"question_type": "essay", "question_text": "Why?"})
    with pytest.raises(PydanticValidationError):
        parse_question({"question_type": "mcq", "question_text": "No options", "correct_answer": "a"})
    q = parse_question({"question_type": "mcq", "question_text": "Q", "options": ["a"], "correct_answer": "a", "points": None})
    assert q.points == 1


def test_row_payload_keeps_variant_fields():
    challenge = parse_question(
        {
            "question_type": "code_challenge",
            "question_text": "Write sum",
            "code_template": "function sum(a, b) {}",
            "test_cases": [{"input": "sum(1, 2)", "expected": "3"}],
        }
    )
    payload = row_payload(challenge)
    assert payload["language"] == "javascript"
    assert payload["test_cases"] == [{"input": "sum(1, 2)", "expected": "3"}]
    assert row_payload(mcq(1)) == ["a", "b", "c"]


@pytest.mark.parametrize(
    "current, calculated, expected",
    [
        ("beginner", "advanced", (True, "beginner", "advanced")),
        ("intermediate", "intermediate", (False, "intermediate", "intermediate")),
        ("advanced", "beginner", (False, "advanced", "advanced")),
        ("intermediate", "beginner", (False, "intermediate", "intermediate")),
        ("intermediate", "advanced", (True, "intermediate", "advanced")),
        (None, "advanced", (False, None, None)),
    ],
)
def test_escalation_is_upgrade_only(current, calculated, expected):
    decision = decide_escalation(current, calculated)
    assert (decision.upgrade, decision.previous, decision.new) == expected
