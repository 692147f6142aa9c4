from __future__ import annotations

import json

import httpx
import pytest

from skillgap.domain.questions import McqQuestion, TestCase
from skillgap.infrastructure.collaborators import HttpCodeChecker, HttpQuestionGenerator
from skillgap.infrastructure.config import CollaboratorConfig
from skillgap.infrastructure.exceptions import CheckerUnavailableError, GeneratorUnavailableError

CONFIG = CollaboratorConfig(
    generator_url="http://collaborators.test/generate",
    checker_url="http://collaborators.test/check",
    api_key="secret",
    timeout_seconds=5,
)


def generated(count: int) -> list[dict]:
    return [
        {
            "question_type": "mcq",
            "question_text": f"Question {i}",
            "options": ["a", "b"],
            "correct_answer": "a",
            "points": 1,
        }
        for i in range(count)
    ]


def generator_for(handler) -> HttpQuestionGenerator:
    return HttpQuestionGenerator(config=CONFIG, transport=httpx.MockTransport(handler))


def checker_for(handler) -> HttpCodeChecker:
    return HttpCodeChecker(config=CONFIG, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_generator_sends_request_and_parses_questions():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("Authorization")
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"questions": generated(2)})

    questions = await generator_for(handler).generate("Python", "Programming", "advanced", 2)

    assert seen["body"] == {
        "skillName": "Python",
        "skillCategory": "Programming",
        "proficiencyLevel": "advanced",
        "questionCount": 2,
    }
    assert seen["auth"] == "Bearer secret"
    assert seen["url"] == "http://collaborators.test/generate"
    assert len(questions) == 2
    assert all(isinstance(q, McqQuestion) and q.id is None for q in questions)


@pytest.mark.asyncio
async def test_generator_rejects_count_mismatch():
    def handler(request):
        return httpx.Response(200, json={"questions": generated(3)})

    with pytest.raises(GeneratorUnavailableError) as exc_info:
        await generator_for(handler).generate("Python", "Programming", "beginner", 5)
    assert exc_info.value.details["expected"] == 5


@pytest.mark.asyncio
async def test_generator_rejects_missing_fields():
    def handler(request):
        questions = generated(2)
        del questions[1]["correct_answer"]
        return httpx.Response(200, json={"questions": questions})

    with pytest.raises(GeneratorUnavailableError) as exc_info:
        await generator_for(handler).generate("Python", "Programming", "beginner", 2)
    assert exc_info.value.details["missing"] == ["correct_answer"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"items": []}),
    ],
)
async def test_generator_failures_are_unavailable(response):
    with pytest.raises(GeneratorUnavailableError):
        await generator_for(lambda request: response).generate("SQL", "Data", "beginner", 1)


@pytest.mark.asyncio
async def test_generator_connection_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GeneratorUnavailableError):
        await generator_for(handler).generate("SQL", "Data", "beginner", 1)


@pytest.mark.asyncio
async def test_checker_maps_verdict():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"isCorrect": False, "feedback": "1 of 3 passed", "passedTests": 1, "totalTests": 3},
        )

    verdict = await checker_for(handler).check(
        "function sum(a, b) { return a - b }",
        [TestCase(input="sum(1, 2)", expected="3")],
        "3",
        "javascript",
    )
    assert seen["body"]["testCases"] == [{"input": "sum(1, 2)", "expected": "3"}]
    assert seen["body"]["expectedOutput"] == "3"
    assert verdict.token == "incorrect"
    assert (verdict.passed_tests, verdict.total_tests) == (1, 3)


@pytest.mark.asyncio
async def test_checker_failures_are_unavailable():
    with pytest.raises(CheckerUnavailableError):
        await checker_for(lambda r: httpx.Response(503)).check("x", [], None, "javascript")
    with pytest.raises(CheckerUnavailableError):
        await checker_for(lambda r: httpx.Response(200, json={"feedback": "?"})).check(
            "x", [], None, "javascript"
        )
