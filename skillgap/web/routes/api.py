from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from skillgap.application import api as app_api
from skillgap.application.sessions import ActiveSession, SessionRegistry
from skillgap.domain.grading import GradeResult
from skillgap.domain.questions import CodeChallengeQuestion, Question
from skillgap.domain.session import SessionState
from skillgap.infrastructure.collaborators import CodeChecker, QuestionGenerator
from skillgap.infrastructure.exceptions import (
    BusinessLogicError,
    CollaboratorUnavailableError,
    DatabaseError,
    InvalidSessionStateError,
    NotFoundError,
    SkillGapError,
    ValidationError,
    handle_database_error,
)
from skillgap.infrastructure.uow import UnitOfWork
from skillgap.web.dependencies import (
    get_code_checker,
    get_db_session,
    get_question_generator,
    get_session_registry,
    get_unit_of_work,
)
from skillgap.web.schemas import (
    AdaptiveStartRequest,
    AnswerRequest,
    AssessmentStartRequest,
    AssessmentSummary,
    CodeCheckRequest,
    CodeCheckResponse,
    Escalation,
    GradeSummary,
    HistoryItem,
    JobRole,
    JobRoleDetail,
    JobRoleMatch,
    NavigateRequest,
    ProgressSummary,
    QuestionView,
    SessionView,
    Skill,
    SkillGapFigure,
    SkillGapReport,
    UserSkill,
    UserSkillUpdate,
)

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)

# Checked in order; subclasses before their parents
_STATUS_BY_ERROR: list[tuple[type[SkillGapError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidSessionStateError, status.HTTP_409_CONFLICT),
    (BusinessLogicError, status.HTTP_409_CONFLICT),
    (CollaboratorUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (DatabaseError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def _raise_http(exc: Exception) -> NoReturn:
    if isinstance(exc, SQLAlchemyError):
        exc = handle_database_error(exc)
    if not isinstance(exc, SkillGapError):
        raise exc
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if status_code >= 500:
        logger.error("Request failed: %s", exc.message)
    raise HTTPException(status_code=status_code, detail=exc.user_message) from exc


def _question_view(key: str, question: Question, reveal: bool) -> QuestionView:
    view = QuestionView(
        key=key,
        question_type=question.question_type,
        question_text=question.question_text,
        points=question.points,
    )
    if isinstance(question, CodeChallengeQuestion):
        view.code_template = question.code_template
        view.language = question.language
    else:
        view.options = list(question.options)
        if reveal:
            view.correct_answer = question.correct_answer
    if reveal:
        view.explanation = question.explanation
    return view


def _session_view(active: ActiveSession) -> SessionView:
    s = active.session
    scored = s.state is SessionState.SCORED
    escalation = None
    if scored and isinstance(s.recorded, dict) and s.recorded.get("escalation"):
        escalation = Escalation(**s.recorded["escalation"])
    return SessionView(
        kind=active.kind,
        title=active.title,
        assessment_id=active.assessment_id,
        skill_id=active.skill_id,
        state=s.state.value,
        current_index=s.current_index,
        total_questions=len(s.questions),
        remaining_seconds=s.remaining_seconds,
        answers=dict(s.answers),
        unanswered=s.unanswered_keys,
        questions=[_question_view(k, q, scored) for k, q in zip(s.keys, s.questions, strict=True)],
        result=_grade_summary(s.result) if s.result is not None else None,
        escalation=escalation,
    )


def _grade_summary(result: GradeResult) -> GradeSummary:
    return GradeSummary(
        score=result.score,
        max_score=result.max_score,
        percentage=result.percentage,
        calculated_level=result.calculated_level,
        correct_keys=list(result.correct_keys),
    )


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@router.get("/skills", response_model=list[Skill])
def list_skills(db: Session = Depends(get_db_session)) -> list[Skill]:
    return [Skill(**record) for record in app_api.list_skills(db)]


@router.get("/job-roles", response_model=list[JobRole])
def list_job_roles(db: Session = Depends(get_db_session)) -> list[JobRole]:
    return [JobRole(**record) for record in app_api.list_job_roles(db)]


@router.get("/job-roles/{job_role_id}", response_model=JobRoleDetail)
def get_job_role(job_role_id: int, db: Session = Depends(get_db_session)) -> JobRoleDetail:
    try:
        return JobRoleDetail(**app_api.get_job_role(db, job_role_id))
    except SkillGapError as exc:
        _raise_http(exc)


@router.get("/assessments", response_model=list[AssessmentSummary])
def list_assessments(db: Session = Depends(get_db_session)) -> list[AssessmentSummary]:
    return [AssessmentSummary(**record) for record in app_api.list_assessments(db)]


# ---------------------------------------------------------------------------
# Learner profile and readiness
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}/skills", response_model=list[UserSkill])
def list_user_skills(user_id: str, db: Session = Depends(get_db_session)) -> list[UserSkill]:
    try:
        return [UserSkill(**record) for record in app_api.list_user_skills(db, user_id)]
    except SkillGapError as exc:
        _raise_http(exc)


@router.put("/users/{user_id}/skills/{skill_id}", response_model=UserSkill)
def upsert_user_skill(
    user_id: str,
    skill_id: int,
    payload: UserSkillUpdate,
    db: Session = Depends(get_db_session),
) -> UserSkill:
    try:
        user_skill = app_api.upsert_user_skill(
            db,
            user_id=user_id,
            skill_id=skill_id,
            proficiency_level=payload.proficiency_level,
            years_of_experience=payload.years_of_experience,
        )
        db.commit()
        db.refresh(user_skill)
    except Exception as exc:
        db.rollback()
        _raise_http(exc)

    return UserSkill(**app_api.user_skill_to_dict(user_skill))


@router.get("/users/{user_id}/skill-gap/{job_role_id}", response_model=SkillGapReport)
def get_skill_gap(
    user_id: str, job_role_id: int, db: Session = Depends(get_db_session)
) -> SkillGapReport:
    try:
        report = app_api.analyze_skill_gap(db, user_id, job_role_id)
    except SkillGapError as exc:
        _raise_http(exc)
    return SkillGapReport(job_role_id=job_role_id, **report.to_dict())


@router.get("/users/{user_id}/skill-gap/{job_role_id}/figure", response_model=SkillGapFigure)
def get_skill_gap_figure(
    user_id: str, job_role_id: int, db: Session = Depends(get_db_session)
) -> SkillGapFigure:
    try:
        return SkillGapFigure(**app_api.build_skill_gap_figure(db, user_id, job_role_id))
    except SkillGapError as exc:
        _raise_http(exc)


@router.get("/users/{user_id}/job-roles/matches", response_model=list[JobRoleMatch])
def rank_job_roles(user_id: str, db: Session = Depends(get_db_session)) -> list[JobRoleMatch]:
    try:
        matches = app_api.rank_job_roles(db, user_id)
    except SkillGapError as exc:
        _raise_http(exc)
    return [
        JobRoleMatch(
            job_role_id=m.job_role_id,
            title=m.title,
            match_score=m.match_score,
            skill_count=m.skill_count,
        )
        for m in matches
    ]


@router.get("/users/{user_id}/job-roles/{job_role_id}/match", response_model=JobRoleMatch)
def get_job_role_match(
    user_id: str, job_role_id: int, db: Session = Depends(get_db_session)
) -> JobRoleMatch:
    try:
        return JobRoleMatch(**app_api.job_role_match(db, user_id, job_role_id))
    except SkillGapError as exc:
        _raise_http(exc)


# ---------------------------------------------------------------------------
# Assessment sessions
# ---------------------------------------------------------------------------


@router.post(
    "/users/{user_id}/session",
    response_model=SessionView,
    status_code=status.HTTP_201_CREATED,
)
async def start_assessment(
    user_id: str,
    payload: AssessmentStartRequest,
    db: Session = Depends(get_db_session),
    uow: UnitOfWork = Depends(get_unit_of_work),
    registry: SessionRegistry = Depends(get_session_registry),
    checker: CodeChecker = Depends(get_code_checker),
) -> SessionView:
    try:
        active = await app_api.start_assessment_session(
            db, uow, registry, user_id, payload.assessment_id, checker=checker
        )
    except SkillGapError as exc:
        _raise_http(exc)
    return _session_view(active)


@router.post(
    "/users/{user_id}/adaptive-session",
    response_model=SessionView,
    status_code=status.HTTP_201_CREATED,
)
async def start_adaptive_assessment(
    user_id: str,
    payload: AdaptiveStartRequest,
    db: Session = Depends(get_db_session),
    uow: UnitOfWork = Depends(get_unit_of_work),
    registry: SessionRegistry = Depends(get_session_registry),
    generator: QuestionGenerator = Depends(get_question_generator),
    checker: CodeChecker = Depends(get_code_checker),
) -> SessionView:
    try:
        active = await app_api.generate_adaptive_session(
            db,
            uow,
            registry,
            generator,
            user_id=user_id,
            skill_id=payload.skill_id,
            difficulty_level=payload.difficulty_level,
            question_count=payload.question_count,
            checker=checker,
        )
    except SkillGapError as exc:
        _raise_http(exc)
    return _session_view(active)


@router.get("/users/{user_id}/session", response_model=SessionView)
async def get_session(
    user_id: str, registry: SessionRegistry = Depends(get_session_registry)
) -> SessionView:
    try:
        return _session_view(registry.get(user_id))
    except SkillGapError as exc:
        _raise_http(exc)


@router.put("/users/{user_id}/session/answers", response_model=SessionView)
async def answer_question(
    user_id: str,
    payload: AnswerRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionView:
    try:
        active = registry.get(user_id)
        active.session.answer(payload.question_id, payload.value)
    except SkillGapError as exc:
        _raise_http(exc)
    return _session_view(active)


@router.post("/users/{user_id}/session/navigate", response_model=SessionView)
async def navigate(
    user_id: str,
    payload: NavigateRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionView:
    try:
        active = registry.get(user_id)
        if payload.index is not None:
            active.session.go_to(payload.index)
        elif payload.direction == "next":
            active.session.next()
        elif payload.direction == "previous":
            active.session.previous()
        else:
            raise ValidationError("navigation", "provide an index or a direction")
    except SkillGapError as exc:
        _raise_http(exc)
    return _session_view(active)


@router.post("/users/{user_id}/session/check-code", response_model=CodeCheckResponse)
async def check_code(
    user_id: str,
    payload: CodeCheckRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> CodeCheckResponse:
    try:
        active = registry.get(user_id)
        verdict = await active.session.check_code(payload.question_id, payload.code)
    except SkillGapError as exc:
        _raise_http(exc)
    return CodeCheckResponse(
        question_id=payload.question_id,
        is_correct=verdict.is_correct,
        verdict=verdict.token,
        feedback=verdict.feedback,
        passed_tests=verdict.passed_tests,
        total_tests=verdict.total_tests,
    )


@router.post("/users/{user_id}/session/submit", response_model=SessionView)
async def submit_session(
    user_id: str, registry: SessionRegistry = Depends(get_session_registry)
) -> SessionView:
    try:
        active = registry.get(user_id)
        await active.session.submit("manual")
    except (SkillGapError, SQLAlchemyError) as exc:
        _raise_http(exc)
    return _session_view(active)


@router.delete("/users/{user_id}/session", status_code=status.HTTP_204_NO_CONTENT)
async def abandon_session(
    user_id: str, registry: SessionRegistry = Depends(get_session_registry)
) -> Response:
    try:
        registry.abandon(user_id)
    except SkillGapError as exc:
        _raise_http(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}/progress", response_model=ProgressSummary)
def get_progress(user_id: str, db: Session = Depends(get_db_session)) -> ProgressSummary:
    try:
        return ProgressSummary(**app_api.progress_summary(db, user_id))
    except SkillGapError as exc:
        _raise_http(exc)


@router.get("/users/{user_id}/history", response_model=list[HistoryItem])
def get_history(user_id: str, db: Session = Depends(get_db_session)) -> list[HistoryItem]:
    history = app_api.assessment_history(db, user_id)
    # Box numpy scalars into plain Python values for the response model
    records = history.astype(object).where(history.notna(), None).to_dict(orient="records")
    return [HistoryItem(**record) for record in records]
