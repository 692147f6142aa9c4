"""
HTTP clients for the two external collaborators.

- Question generator: ``{skillName, skillCategory, proficiencyLevel, questionCount}``
  -> ``{questions: [...]}``. Structure only is checked; any missing field or a
  count mismatch is treated as an unavailable generator.
- Code checker: ``{code, testCases, expectedOutput, language}``
  -> ``{isCorrect, feedback, passedTests?, totalTests?}``.

Both clients accept an optional ``httpx`` transport so tests can plug in
``httpx.MockTransport``.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..domain.questions import CORRECT_TOKEN, INCORRECT_TOKEN, Question, TestCase, parse_questions
from .config import CollaboratorConfig, get_settings
from .exceptions import CheckerUnavailableError, GeneratorUnavailableError
from .logging import get_logger

logger = get_logger(__name__)

REQUIRED_QUESTION_FIELDS = ("question_type", "question_text", "correct_answer", "points")


class CodeVerdict(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_correct: bool = Field(..., alias="isCorrect")
    feedback: str = ""
    passed_tests: int | None = Field(None, alias="passedTests")
    total_tests: int | None = Field(None, alias="totalTests")
    actual_output: str | None = Field(None, alias="actualOutput")

    @property
    def token(self) -> str:
        return CORRECT_TOKEN if self.is_correct else INCORRECT_TOKEN


class QuestionGenerator(Protocol):
    async def generate(
        self,
        skill_name: str,
        skill_category: str,
        proficiency_level: str,
        question_count: int,
    ) -> list[Question]: ...


class CodeChecker(Protocol):
    async def check(
        self,
        code: str,
        test_cases: list[TestCase],
        expected_output: str | None,
        language: str,
    ) -> CodeVerdict: ...


class _HttpCollaborator:
    def __init__(
        self,
        url: str,
        config: CollaboratorConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or get_settings().collaborators
        self.url = url
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            headers=self.config.request_headers(),
            transport=self.transport,
        )


class HttpQuestionGenerator(_HttpCollaborator):
    def __init__(
        self,
        config: CollaboratorConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        url: str | None = None,
    ):
        config = config or get_settings().collaborators
        super().__init__(url or config.generator_url, config, transport)

    async def generate(
        self,
        skill_name: str,
        skill_category: str,
        proficiency_level: str,
        question_count: int,
    ) -> list[Question]:
        payload = {
            "skillName": skill_name,
            "skillCategory": skill_category,
            "proficiencyLevel": proficiency_level,
            "questionCount": question_count,
        }
        async with self._client() as client:
            try:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
                body = response.json()
            except httpx.HTTPError as e:
                logger.error(f"Question generation failed: {str(e)}")
                raise GeneratorUnavailableError(str(e)) from e
            except ValueError as e:
                raise GeneratorUnavailableError("response is not JSON") from e

        raw = body.get("questions") if isinstance(body, dict) else None
        if not isinstance(raw, list):
            raise GeneratorUnavailableError("response has no question list")
        if len(raw) != question_count:
            raise GeneratorUnavailableError(
                f"expected {question_count} questions, got {len(raw)}",
                details={"expected": question_count, "received": len(raw)},
            )
        for index, item in enumerate(raw):
            if not isinstance(item, dict):
                raise GeneratorUnavailableError(f"question {index} is not an object")
            missing = [f for f in REQUIRED_QUESTION_FIELDS if item.get(f) in (None, "")]
            if missing:
                raise GeneratorUnavailableError(
                    f"question {index} is missing {', '.join(missing)}",
                    details={"index": index, "missing": missing},
                )

        try:
            # Generated sets have no persisted ids; answers key by position
            questions = parse_questions([{**item, "id": None} for item in raw])
        except PydanticValidationError as e:
            raise GeneratorUnavailableError(f"malformed questions: {e.error_count()} errors") from e

        logger.info(
            f"Generated {len(questions)} {proficiency_level} questions for {skill_name}"
        )
        return questions


class HttpCodeChecker(_HttpCollaborator):
    def __init__(
        self,
        config: CollaboratorConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        url: str | None = None,
    ):
        config = config or get_settings().collaborators
        super().__init__(url or config.checker_url, config, transport)

    async def check(
        self,
        code: str,
        test_cases: list[TestCase],
        expected_output: str | None,
        language: str,
    ) -> CodeVerdict:
        payload: dict[str, Any] = {
            "code": code,
            "testCases": [tc.model_dump() for tc in test_cases],
            "expectedOutput": expected_output,
            "language": language,
        }
        async with self._client() as client:
            try:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
                body = response.json()
            except httpx.HTTPError as e:
                logger.error(f"Code check failed: {str(e)}")
                raise CheckerUnavailableError(str(e)) from e
            except ValueError as e:
                raise CheckerUnavailableError("response is not JSON") from e

        try:
            return CodeVerdict.model_validate(body)
        except PydanticValidationError as e:
            raise CheckerUnavailableError("malformed verdict") from e
