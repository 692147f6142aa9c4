"""
Assessment session state machine.

State flow: not_started -> in_progress -> submitting -> scored, with
abandoned as the exit for a learner who leaves mid-attempt.

The session owns its answers, the current question index and the countdown
task. The countdown and a manual submit reach ``submit()`` through the same
guard, so a result is recorded once however many triggers arrive.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from ..infrastructure.collaborators import CodeChecker, CodeVerdict
from ..infrastructure.exceptions import (
    CheckerUnavailableError,
    DuplicateSubmissionError,
    InvalidSessionStateError,
    ValidationError,
)
from ..infrastructure.logging import get_logger
from .grading import GradeResult, grade
from .questions import CodeChallengeQuestion, Question, answer_key

logger = get_logger(__name__)


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SCORED = "scored"
    ABANDONED = "abandoned"


class SubmitTrigger(str, Enum):
    MANUAL = "manual"
    TIMEOUT = "timeout"


@dataclass(slots=True)
class SessionAttempt:
    """What a recorder receives once grading has succeeded."""

    questions: list[Question]
    answers: dict[str, str]
    grade: GradeResult
    trigger: SubmitTrigger
    started_at: datetime | None
    completed_at: datetime = field(default_factory=datetime.utcnow)


class ResultRecorder(Protocol):
    """Persists an attempt durably. May be sync or async; errors must propagate."""

    def record(self, attempt: SessionAttempt) -> Any: ...


def _running_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class AssessmentSession:
    def __init__(
        self,
        questions: Sequence[Question],
        recorder: ResultRecorder,
        time_limit_minutes: int | None = None,
        checker: CodeChecker | None = None,
        tick_interval: float = 1.0,
        label: str = "assessment",
    ):
        if time_limit_minutes is not None and time_limit_minutes <= 0:
            raise ValidationError("time_limit_minutes", "must be positive", time_limit_minutes)
        self.questions: list[Question] = list(questions)
        self.keys: list[str] = [answer_key(q, i) for i, q in enumerate(self.questions)]
        self._by_key: dict[str, Question] = dict(zip(self.keys, self.questions, strict=True))
        self.recorder = recorder
        self.checker = checker
        self.time_limit_minutes = time_limit_minutes
        self.tick_interval = tick_interval
        self.label = label

        self.state = SessionState.NOT_STARTED
        self.current_index = 0
        self.answers: dict[str, str] = {}
        self.remaining_seconds: int | None = (
            time_limit_minutes * 60 if time_limit_minutes else None
        )
        self.started_at: datetime | None = None
        self.result: GradeResult | None = None
        self.recorded: Any = None
        self._countdown: asyncio.Task | None = None
        self._in_flight = False

    # ---------- Lifecycle ----------
    def start(self) -> None:
        """Begin the attempt; repeated calls are ignored. Timed sessions need a running loop."""
        if self.state is not SessionState.NOT_STARTED:
            return
        self.state = SessionState.IN_PROGRESS
        self.started_at = datetime.utcnow()
        if self.remaining_seconds:
            self._countdown = asyncio.get_running_loop().create_task(self._run_countdown())
        logger.info(
            f"Started {self.label}: {len(self.questions)} questions, "
            f"time limit {self.time_limit_minutes or 'none'}"
        )

    async def submit(self, trigger: SubmitTrigger | str = SubmitTrigger.MANUAL) -> GradeResult | None:
        trigger = SubmitTrigger(trigger)
        try:
            self._check_can_submit(trigger)
        except DuplicateSubmissionError as e:
            logger.info(e.message)
            return self.result

        # State flips before the first await so a racing trigger sees it
        self.state = SessionState.SUBMITTING
        self._in_flight = True
        try:
            result = grade(self.questions, self.answers)
            attempt = SessionAttempt(
                questions=list(self.questions),
                answers=dict(self.answers),
                grade=result,
                trigger=trigger,
                started_at=self.started_at,
            )
            outcome = self.recorder.record(attempt)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            logger.error(f"Submission of {self.label} failed ({trigger.value}): {str(e)}")
            raise
        finally:
            self._in_flight = False

        self.result = result
        self.recorded = outcome
        self.state = SessionState.SCORED
        self._cancel_countdown()
        logger.info(
            f"Scored {self.label} via {trigger.value}: {result.score}/{result.max_score} "
            f"({result.percentage}%, {result.calculated_level})"
        )
        return result

    def abandon(self) -> None:
        """Leave without persisting anything."""
        if self.state is SessionState.SCORED:
            return
        if self._in_flight:
            raise InvalidSessionStateError(
                "Cannot abandon while a submission is being recorded", self.state.value
            )
        self._cancel_countdown()
        self.answers.clear()
        self.state = SessionState.ABANDONED
        logger.info(f"Abandoned {self.label}")

    # ---------- Answers ----------
    def answer(self, key: str | int, value: str) -> None:
        self._require_in_progress("answer")
        question = self._question(key)
        if isinstance(question, CodeChallengeQuestion):
            raise ValidationError(
                "question_id", "code challenges are answered by running the code check", key
            )
        self.answers[str(key)] = value

    async def check_code(self, key: str | int, code: str) -> CodeVerdict:
        """
        Run ``code`` through the checker and record its verdict token.

        A checker failure raises ``CheckerUnavailableError`` and leaves the
        session and its answers untouched.
        """
        self._require_in_progress("check_code")
        question = self._question(key)
        if not isinstance(question, CodeChallengeQuestion):
            raise ValidationError("question_id", "only code challenges can be checked", key)
        if self.checker is None:
            raise CheckerUnavailableError("no code checker configured")

        verdict = await self.checker.check(
            code=code,
            test_cases=question.test_cases,
            expected_output=question.expected_output,
            language=question.language,
        )
        if self.state is SessionState.IN_PROGRESS:
            self.answers[str(key)] = verdict.token
        else:
            logger.warning(f"Dropping code verdict for {key}: session is {self.state.value}")
        return verdict

    # ---------- Navigation ----------
    def go_to(self, index: int) -> Question:
        self._require_in_progress("navigate")
        if not 0 <= index < len(self.questions):
            raise ValidationError(
                "question_index", f"must be between 0 and {len(self.questions) - 1}", index
            )
        self.current_index = index
        return self.questions[index]

    def next(self) -> Question:
        return self.go_to(self.current_index + 1)

    def previous(self) -> Question:
        return self.go_to(self.current_index - 1)

    @property
    def unanswered_keys(self) -> list[str]:
        return [k for k in self.keys if k not in self.answers]

    @property
    def is_recording(self) -> bool:
        return self._in_flight

    @property
    def countdown(self) -> asyncio.Task | None:
        return self._countdown

    # ---------- Internals ----------
    def _check_can_submit(self, trigger: SubmitTrigger) -> None:
        if self._in_flight or self.state is SessionState.SCORED:
            raise DuplicateSubmissionError(trigger.value, self.state.value)
        # SUBMITTING without a write in flight means the last write failed
        if self.state not in (SessionState.IN_PROGRESS, SessionState.SUBMITTING):
            raise InvalidSessionStateError(
                f"Cannot submit a session that is {self.state.value}", self.state.value
            )

    def _require_in_progress(self, action: str) -> None:
        if self.state is not SessionState.IN_PROGRESS:
            raise InvalidSessionStateError(
                f"Cannot {action} while session is {self.state.value}", self.state.value
            )

    def _question(self, key: str | int) -> Question:
        question = self._by_key.get(str(key))
        if question is None:
            raise ValidationError("question_id", "not part of this assessment", key)
        return question

    async def _run_countdown(self) -> None:
        while self.remaining_seconds and self.remaining_seconds > 0:
            await asyncio.sleep(self.tick_interval)
            self.remaining_seconds -= 1
        logger.info(f"Time expired for {self.label}")
        try:
            await self.submit(SubmitTrigger.TIMEOUT)
        except Exception as e:
            # Nobody awaits this task; the session stays retryable in SUBMITTING
            logger.error(f"Timed submission of {self.label} failed: {str(e)}")

    def _cancel_countdown(self) -> None:
        task, self._countdown = self._countdown, None
        if task is None or task.done() or task is _running_task():
            return
        task.cancel()
