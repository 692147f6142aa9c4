from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class Skill(BaseModel):
    id: int
    name: str
    category: str
    description: Optional[str] = None


class JobRole(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    industry: Optional[str] = None
    experience_level: Optional[str] = None


class JobRoleSkill(BaseModel):
    skill_id: int
    skill_name: str
    category: Optional[str] = None
    required_proficiency: str
    importance: Optional[str] = None


class JobRoleDetail(JobRole):
    skills: list[JobRoleSkill] = []


class AssessmentSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    difficulty: Optional[str] = None
    time_limit_minutes: Optional[int] = None
    skill_id: Optional[int] = None


class UserSkill(BaseModel):
    id: int
    skill_id: int
    skill_name: Optional[str] = None
    category: Optional[str] = None
    proficiency_level: str
    years_of_experience: int = 0
    updated_at: Optional[datetime] = None


class UserSkillUpdate(BaseModel):
    # Level is checked against the proficiency scale by the application layer
    proficiency_level: str
    years_of_experience: Optional[int] = None


class SkillGapEntry(BaseModel):
    skill_id: int
    skill_name: str
    category: Optional[str] = None
    importance: str
    user_level: int
    required_level: int
    gap: int
    status: Literal["met", "partial", "missing"]


class GapCounts(BaseModel):
    met: int = 0
    partial: int = 0
    missing: int = 0


class SkillGapReport(BaseModel):
    job_role_id: int
    readiness: int
    counts: GapCounts
    entries: list[SkillGapEntry] = []


class SkillGapFigure(BaseModel):
    readiness: int
    radar: Optional[dict[str, Any]] = None


class JobRoleMatch(BaseModel):
    job_role_id: int
    title: str
    match_score: int
    skill_count: Optional[int] = None


class AssessmentStartRequest(BaseModel):
    assessment_id: int


class AdaptiveStartRequest(BaseModel):
    skill_id: int
    difficulty_level: str = "intermediate"
    question_count: Optional[int] = None


class AnswerRequest(BaseModel):
    question_id: str = Field(..., min_length=1)
    value: str


class NavigateRequest(BaseModel):
    index: Optional[int] = None
    direction: Optional[Literal["next", "previous"]] = None


class CodeCheckRequest(BaseModel):
    question_id: str = Field(..., min_length=1)
    code: str


class CodeCheckResponse(BaseModel):
    question_id: str
    is_correct: bool
    verdict: Literal["correct", "incorrect"]
    feedback: str = ""
    passed_tests: Optional[int] = None
    total_tests: Optional[int] = None


class GradeSummary(BaseModel):
    score: int
    max_score: int
    percentage: int
    calculated_level: str
    correct_keys: list[str] = []


class Escalation(BaseModel):
    upgrade: bool
    previous: Optional[str] = None
    new: Optional[str] = None


class QuestionView(BaseModel):
    key: str
    question_type: str
    question_text: str
    points: int
    options: Optional[list[str]] = None
    code_template: Optional[str] = None
    language: Optional[str] = None
    # Only revealed once the attempt is scored
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


class SessionView(BaseModel):
    kind: Literal["standard", "adaptive"]
    title: str
    assessment_id: Optional[int] = None
    skill_id: Optional[int] = None
    state: str
    current_index: int
    total_questions: int
    remaining_seconds: Optional[int] = None
    answers: dict[str, str] = {}
    unanswered: list[str] = []
    questions: list[QuestionView] = []
    result: Optional[GradeSummary] = None
    escalation: Optional[Escalation] = None


class ProgressSummary(BaseModel):
    user_id: str
    total_assessments: int
    average_percentage: int
    highest_level: Optional[str] = None
    assessments_this_month: int
    skills_by_category: dict[str, int] = {}
    levels: dict[str, int] = {}


class HistoryItem(BaseModel):
    kind: Literal["standard", "adaptive"]
    title: Optional[str] = None
    skill: Optional[str] = None
    score: Optional[int] = None
    max_score: Optional[int] = None
    percentage: Optional[int] = None
    calculated_level: Optional[str] = None
    completed_at: Optional[datetime] = None
