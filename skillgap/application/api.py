"""
Application API layer with error handling, validation and logging.

This module provides the use cases behind the HTTP routes: skill profile
management, gap and match scoring, assessment sessions with their result
recorders, and progress analytics.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from datetime import datetime
from typing import Any

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.escalation import EscalationDecision, decide_escalation
from ..domain.gap_analysis import GapReport
from ..domain.proficiency import ProficiencyLevel, level_name, ordinal, round_half_up
from ..domain.questions import Question, dump_questions, questions_from_rows
from ..domain.schemas import AdaptiveRequestInput, UserIdInput, UserSkillInput, validate_input
from ..domain.services import ReadinessService, RoleMatch
from ..domain.session import AssessmentSession, SessionAttempt
from ..infrastructure.collaborators import CodeChecker, QuestionGenerator
from ..infrastructure.config import get_settings
from ..infrastructure.exceptions import (
    BusinessLogicError,
    NoGradableQuestionsError,
    SkillGapError,
    UserSkillNotFoundError,
    ValidationError,
    create_user_friendly_error_message,
    handle_database_error,
    log_error_details,
)
from ..infrastructure.logging import get_logger, log_operation, set_context
from ..infrastructure.models import AssessmentORM, UserSkillORM
from ..infrastructure.repositories import (
    AdaptiveAssessmentRepo,
    AssessmentRepo,
    AssessmentResultRepo,
    JobRoleRepo,
    SkillRepo,
    UserSkillRepo,
)
from ..infrastructure.uow import UnitOfWork
from ..utils.skill_radar import make_skill_gap_radar
from .sessions import ActiveSession, SessionRegistry

logger = get_logger(__name__)

HISTORY_COLUMNS = [
    "kind",
    "title",
    "skill",
    "score",
    "max_score",
    "percentage",
    "calculated_level",
    "completed_at",
]


def _validated(schema_class, data: dict[str, Any], label: str) -> dict[str, Any]:
    validation_result = validate_input(schema_class, data)
    if not validation_result.success:
        error_msg = "; ".join([f"{e.field}: {e.message}" for e in validation_result.errors])
        logger.warning(f"{label} validation failed: {error_msg}")
        raise ValidationError(label, error_msg)
    if validation_result.data is None:
        raise RuntimeError("Validation succeeded but returned no data")
    return validation_result.data


def _wrap(e: Exception, message: str, context: dict[str, Any]) -> SkillGapError:
    """Log ``e`` and return it unchanged if it is ours, else a generic SkillGapError."""
    error_details = log_error_details(e, context)
    logger.error(message, extra={"error": error_details})
    if isinstance(e, SkillGapError):
        return e
    if isinstance(e, SQLAlchemyError):
        return handle_database_error(e, message)
    return SkillGapError(
        f"{message}: {str(e)}",
        details=error_details,
        user_message=create_user_friendly_error_message(e),
    )


# ---------------------------------------------------------------------------
# Catalog and profile
# ---------------------------------------------------------------------------


@log_operation("list_skills")
def list_skills(session: Session) -> list[dict[str, Any]]:
    return [
        {"id": s.id, "name": s.name, "category": s.category, "description": s.description}
        for s in SkillRepo(session).list_all()
    ]


@log_operation("list_job_roles")
def list_job_roles(session: Session) -> list[dict[str, Any]]:
    return [
        {
            "id": r.id,
            "title": r.title,
            "description": r.description,
            "industry": r.industry,
            "experience_level": r.experience_level,
        }
        for r in JobRoleRepo(session).list_all()
    ]


@log_operation("get_job_role")
def get_job_role(session: Session, job_role_id: int) -> dict[str, Any]:
    role = JobRoleRepo(session).get_with_skills(job_role_id)
    return {
        "id": role.id,
        "title": role.title,
        "description": role.description,
        "industry": role.industry,
        "experience_level": role.experience_level,
        "skills": [
            {
                "skill_id": rs.skill_id,
                "skill_name": rs.skill.name,
                "category": rs.skill.category,
                "required_proficiency": rs.required_proficiency,
                "importance": rs.importance,
            }
            for rs in sorted(role.skills, key=lambda rs: rs.id)
        ],
    }


@log_operation("list_assessments")
def list_assessments(session: Session) -> list[dict[str, Any]]:
    return [
        {
            "id": a.id,
            "title": a.title,
            "description": a.description,
            "difficulty": a.difficulty,
            "time_limit_minutes": a.time_limit_minutes,
            "skill_id": a.skill_id,
        }
        for a in AssessmentRepo(session).list_active()
    ]


def user_skill_to_dict(us: UserSkillORM) -> dict[str, Any]:
    return {
        "id": us.id,
        "skill_id": us.skill_id,
        "skill_name": us.skill.name if us.skill is not None else None,
        "category": us.skill.category if us.skill is not None else None,
        "proficiency_level": us.proficiency_level,
        "years_of_experience": us.years_of_experience,
        "updated_at": us.updated_at,
    }


@log_operation("list_user_skills")
def list_user_skills(session: Session, user_id: str) -> list[dict[str, Any]]:
    _validated(UserIdInput, {"user_id": user_id}, "user_id")
    return [user_skill_to_dict(us) for us in UserSkillRepo(session).for_user(user_id)]


@log_operation("upsert_user_skill")
def upsert_user_skill(
    session: Session,
    user_id: str,
    skill_id: int,
    proficiency_level: str,
    years_of_experience: int | None = None,
) -> UserSkillORM:
    """
    Add a skill to the learner's profile or change its level.

    The learner may set any level here, including a lower one; only the
    assessment escalation path is upgrade-only.

    Raises:
        ValidationError: If input data is invalid (including unknown levels)
        SkillNotFoundError: If the skill doesn't exist
    """
    validated = _validated(
        UserSkillInput,
        {
            "user_id": user_id,
            "skill_id": skill_id,
            "proficiency_level": proficiency_level,
            "years_of_experience": years_of_experience,
        },
        "user_skill",
    )

    try:
        set_context(operation="upsert_user_skill", user_id=user_id)
        SkillRepo(session).get_by_id_required(skill_id)
        user_skill = UserSkillRepo(session).upsert(
            user_id=validated["user_id"],
            skill_id=validated["skill_id"],
            proficiency_level=validated["proficiency_level"],
            years_of_experience=validated["years_of_experience"],
        )
        logger.info(
            f"Set skill {skill_id} to {validated['proficiency_level']} for {user_id}"
        )
        return user_skill
    except Exception as e:
        error = _wrap(e, "Failed to save user skill", {"user_id": user_id, "skill_id": skill_id})
        if error is e:
            raise
        raise error from e


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------


@log_operation("analyze_skill_gap")
def analyze_skill_gap(session: Session, user_id: str, job_role_id: int) -> GapReport:
    set_context(operation="analyze_skill_gap", user_id=user_id)
    return ReadinessService(session, logger).gap_report(user_id, job_role_id)


@log_operation("job_role_match")
def job_role_match(session: Session, user_id: str, job_role_id: int) -> dict[str, Any]:
    set_context(operation="job_role_match", user_id=user_id)
    role = JobRoleRepo(session).get_with_skills(job_role_id)
    score = ReadinessService(session, logger).match_score(user_id, job_role_id)
    return {"job_role_id": role.id, "title": role.title, "match_score": score}


@log_operation("rank_job_roles")
def rank_job_roles(session: Session, user_id: str) -> list[RoleMatch]:
    return ReadinessService(session, logger).rank_roles(user_id)


@log_operation("build_skill_gap_figure")
def build_skill_gap_figure(session: Session, user_id: str, job_role_id: int) -> dict[str, Any]:
    """Plotly-ready radar of current vs required levels (first eight role skills)."""
    report = analyze_skill_gap(session, user_id, job_role_id)
    rows = report.chart_rows()
    if not rows:
        return {"readiness": report.readiness, "radar": None}
    role = JobRoleRepo(session).get_with_skills(job_role_id)
    figure = make_skill_gap_radar(
        pd.DataFrame(rows, columns=["skill", "current", "required", "fullMark"]),
        title=f"{role.title}: {report.readiness}% ready",
    )
    return {"readiness": report.readiness, "radar": json.loads(figure.to_json())}


# ---------------------------------------------------------------------------
# Result recording and escalation
# ---------------------------------------------------------------------------


def apply_escalation(
    session: Session, user_id: str, skill_id: int | None, calculated_level: str
) -> EscalationDecision | None:
    """
    Upgrade the stored level for ``skill_id`` if the attempt earned a higher one.

    Never creates a UserSkill. Returns None when there is no skill to escalate.
    """
    if skill_id is None:
        return None
    repo = UserSkillRepo(session)
    user_skill = repo.get_for(user_id, skill_id)
    if user_skill is None:
        logger.info(f"No stored level for skill {skill_id}; {user_id} keeps no record")
        return EscalationDecision(upgrade=False, previous=None, new=None)
    decision = decide_escalation(user_skill.proficiency_level, calculated_level)
    if decision.upgrade:
        repo.set_level(user_skill, decision.new)
        logger.info(
            f"Escalated skill {skill_id} for {user_id}: {decision.previous} -> {decision.new}"
        )
    return decision


class AssessmentResultRecorder:
    """Writes one assessment_results row and applies escalation in the same transaction."""

    def __init__(self, uow: UnitOfWork, user_id: str, assessment_id: int, skill_id: int | None):
        self.uow = uow
        self.user_id = user_id
        self.assessment_id = assessment_id
        self.skill_id = skill_id

    async def record(self, attempt: SessionAttempt) -> dict[str, Any]:
        return await asyncio.to_thread(self._write, attempt)

    def _write(self, attempt: SessionAttempt) -> dict[str, Any]:
        g = attempt.grade
        with self.uow.begin() as s:
            result = AssessmentResultRepo(s).create(
                user_id=self.user_id,
                assessment_id=self.assessment_id,
                score=g.score,
                max_score=g.max_score,
                percentage=g.percentage,
                calculated_level=g.calculated_level,
                answers=attempt.answers,
                completed_at=attempt.completed_at,
            )
            decision = apply_escalation(s, self.user_id, self.skill_id, g.calculated_level)
            return {
                "result_id": result.id,
                "escalation": asdict(decision) if decision is not None else None,
            }


class AdaptiveAssessmentRecorder:
    """Writes the adaptive_assessments row, question snapshot included, on submit."""

    def __init__(self, uow: UnitOfWork, user_id: str, skill_id: int, difficulty_level: str):
        self.uow = uow
        self.user_id = user_id
        self.skill_id = skill_id
        self.difficulty_level = difficulty_level

    async def record(self, attempt: SessionAttempt) -> dict[str, Any]:
        return await asyncio.to_thread(self._write, attempt)

    def _write(self, attempt: SessionAttempt) -> dict[str, Any]:
        g = attempt.grade
        with self.uow.begin() as s:
            row = AdaptiveAssessmentRepo(s).create(
                user_id=self.user_id,
                skill_id=self.skill_id,
                difficulty_level=self.difficulty_level,
                questions=dump_questions(attempt.questions),
                answers=attempt.answers,
                score=g.score,
                max_score=g.max_score,
                percentage=g.percentage,
                calculated_level=g.calculated_level,
                started_at=attempt.started_at or attempt.completed_at,
                completed_at=attempt.completed_at,
            )
            # Stored level is read again here, not at generation time
            decision = apply_escalation(s, self.user_id, self.skill_id, g.calculated_level)
            return {
                "adaptive_assessment_id": row.id,
                "escalation": asdict(decision) if decision is not None else None,
            }


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@log_operation("load_assessment")
def load_assessment(session: Session, assessment_id: int) -> tuple[AssessmentORM, list[Question]]:
    """
    Load an active catalog assessment and resolve its question variants.

    Raises:
        AssessmentNotFoundError: If the assessment doesn't exist or is inactive
        InvalidQuestionDataError: If a stored question does not fit its type
        NoGradableQuestionsError: If it has no questions
    """
    assessment = AssessmentRepo(session).get_active_with_questions(assessment_id)
    questions = questions_from_rows(assessment.questions)
    if not questions:
        raise NoGradableQuestionsError(0)
    return assessment, questions


async def start_assessment_session(
    session: Session,
    uow: UnitOfWork,
    registry: SessionRegistry,
    user_id: str,
    assessment_id: int,
    checker: CodeChecker | None = None,
    tick_interval: float | None = None,
) -> ActiveSession:
    """
    Load a catalog assessment off the event loop and start a session for the learner.

    Timed assessments arm their countdown on the running loop.

    Raises:
        AssessmentNotFoundError: If the assessment doesn't exist or is inactive
        InvalidQuestionDataError: If a stored question does not fit its type
        NoGradableQuestionsError: If it has no questions
    """
    _validated(UserIdInput, {"user_id": user_id}, "user_id")
    set_context(operation="start_assessment", user_id=user_id, assessment_id=assessment_id)

    assessment, questions = await asyncio.to_thread(load_assessment, session, assessment_id)

    attempt = AssessmentSession(
        questions,
        recorder=AssessmentResultRecorder(uow, user_id, assessment.id, assessment.skill_id),
        time_limit_minutes=assessment.time_limit_minutes,
        checker=checker,
        tick_interval=tick_interval or get_settings().assessment.tick_interval_seconds,
        label=f"assessment {assessment.id} for {user_id}",
    )
    active = registry.register(
        ActiveSession(
            user_id=user_id,
            kind="standard",
            session=attempt,
            assessment_id=assessment.id,
            skill_id=assessment.skill_id,
            title=assessment.title,
        )
    )
    attempt.start()
    return active


def _profile_skill(session: Session, user_id: str, skill_id: int):
    skill = SkillRepo(session).get_by_id_required(skill_id)
    if UserSkillRepo(session).get_for(user_id, skill_id) is None:
        raise UserSkillNotFoundError(user_id, skill_id)
    return skill


async def generate_adaptive_session(
    session: Session,
    uow: UnitOfWork,
    registry: SessionRegistry,
    generator: QuestionGenerator,
    user_id: str,
    skill_id: int,
    difficulty_level: str = "intermediate",
    question_count: int | None = None,
    checker: CodeChecker | None = None,
) -> ActiveSession:
    """
    Generate a question set for one of the learner's skills and start an untimed session.

    Raises:
        UserSkillNotFoundError: If the learner has not added the skill
        GeneratorUnavailableError: If generation fails or returns a bad shape
    """
    settings = get_settings()
    if not settings.app.enable_adaptive_assessments:
        raise BusinessLogicError("Adaptive assessments are disabled", rule="adaptive_enabled")

    validated = _validated(
        AdaptiveRequestInput,
        {
            "user_id": user_id,
            "skill_id": skill_id,
            "difficulty_level": difficulty_level,
            "question_count": question_count,
        },
        "adaptive_request",
    )
    count = validated["question_count"] or settings.collaborators.default_question_count
    if count > settings.assessment.max_generated_questions:
        raise ValidationError(
            "question_count",
            f"must be at most {settings.assessment.max_generated_questions}",
            count,
        )

    set_context(operation="generate_adaptive", user_id=user_id)
    skill = await asyncio.to_thread(_profile_skill, session, user_id, skill_id)

    logger.info(f"Generating {count} {validated['difficulty_level']} questions on {skill.name}")
    questions = await generator.generate(
        skill_name=skill.name,
        skill_category=skill.category,
        proficiency_level=validated["difficulty_level"],
        question_count=count,
    )

    attempt = AssessmentSession(
        questions,
        recorder=AdaptiveAssessmentRecorder(
            uow, user_id, skill.id, validated["difficulty_level"]
        ),
        checker=checker,
        label=f"adaptive {skill.name} for {user_id}",
    )
    active = registry.register(
        ActiveSession(
            user_id=user_id,
            kind="adaptive",
            session=attempt,
            skill_id=skill.id,
            title=f"{skill.name} ({validated['difficulty_level']})",
        )
    )
    attempt.start()
    return active


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@log_operation("assessment_history")
def assessment_history(session: Session, user_id: str) -> pd.DataFrame:
    """Standard and adaptive results for a learner, newest first."""
    rows: list[dict[str, Any]] = []
    for r in AssessmentResultRepo(session).for_user(user_id):
        rows.append(
            {
                "kind": "standard",
                "title": r.assessment.title if r.assessment is not None else None,
                "skill": (
                    r.assessment.skill.name
                    if r.assessment is not None and r.assessment.skill is not None
                    else None
                ),
                "score": r.score,
                "max_score": r.max_score,
                "percentage": r.percentage,
                "calculated_level": r.calculated_level,
                "completed_at": r.completed_at,
            }
        )
    for a in AdaptiveAssessmentRepo(session).for_user(user_id):
        rows.append(
            {
                "kind": "adaptive",
                "title": f"{a.skill.name} ({a.difficulty_level})",
                "skill": a.skill.name,
                "score": a.score,
                "max_score": a.max_score,
                "percentage": a.percentage,
                "calculated_level": a.calculated_level,
                "completed_at": a.completed_at,
            }
        )

    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    if df.empty:
        return df
    return df.sort_values("completed_at", ascending=False, kind="stable").reset_index(drop=True)


@log_operation("progress_summary")
def progress_summary(
    session: Session, user_id: str, now: datetime | None = None
) -> dict[str, Any]:
    """
    Headline progress numbers for a learner.

    - total assessments: standard plus adaptive
    - average percentage: rounded half up, 0 with no history
    - highest level: across attempt results and the stored profile
    - this month: attempts completed in the current calendar month
    - skills by category: profile skill counts
    """
    try:
        set_context(operation="progress_summary", user_id=user_id)
        now = now or datetime.utcnow()
        history = assessment_history(session, user_id)
        user_skills = UserSkillRepo(session).for_user(user_id)

        total = int(len(history))
        average = round_half_up(float(history["percentage"].mean())) if total else 0

        levels = [lvl for lvl in history["calculated_level"].dropna().tolist()]
        levels += [us.proficiency_level for us in user_skills]
        ordinals = []
        for lvl in levels:
            try:
                ordinals.append(ordinal(lvl))
            except SkillGapError:
                logger.warning(f"Skipping unrecognised level {lvl!r} in progress summary")
        highest = level_name(max(ordinals)) if ordinals else None

        this_month = 0
        if total:
            completed = pd.to_datetime(history["completed_at"])
            this_month = int(
                ((completed.dt.year == now.year) & (completed.dt.month == now.month)).sum()
            )

        by_category: dict[str, int] = {}
        if user_skills:
            skills_df = pd.DataFrame(
                [{"category": us.skill.category} for us in user_skills if us.skill is not None]
            )
            if not skills_df.empty:
                by_category = {
                    str(k): int(v) for k, v in skills_df.groupby("category").size().items()
                }

        summary = {
            "user_id": user_id,
            "total_assessments": total,
            "average_percentage": average,
            "highest_level": highest,
            "assessments_this_month": this_month,
            "skills_by_category": by_category,
            "levels": {
                lvl.value: sum(1 for us in user_skills if us.proficiency_level == lvl.value)
                for lvl in ProficiencyLevel
            },
        }
        logger.info(f"Progress for {user_id}: {total} assessments, average {average}%")
        return summary

    except Exception as e:
        error = _wrap(e, "Failed to build progress summary", {"user_id": user_id})
        if error is e:
            raise
        raise error from e
