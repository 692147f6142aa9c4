from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

LEVEL_CHECK = "IN ('beginner', 'intermediate', 'advanced')"


class Base(DeclarativeBase):
    pass


class SkillORM(Base):
    __tablename__ = "skills"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )


class UserSkillORM(Base):
    __tablename__ = "user_skills"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    skill_id: Mapped[int] = mapped_column(
        ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True
    )
    proficiency_level: Mapped[str] = mapped_column(String(16), default="beginner", nullable=False)
    years_of_experience: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "skill_id", name="uq_user_skill"),
        CheckConstraint(f"proficiency_level {LEVEL_CHECK}", name="ck_user_skill_level"),
        CheckConstraint("years_of_experience >= 0", name="ck_user_skill_years"),
    )

    skill: Mapped[SkillORM] = relationship()


class JobRoleORM(Base):
    __tablename__ = "job_roles"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    industry: Mapped[str | None] = mapped_column(String(255), nullable=True)
    experience_level: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )

    skills: Mapped[list[JobRoleSkillORM]] = relationship(
        back_populates="job_role", cascade="all, delete"
    )


class JobRoleSkillORM(Base):
    __tablename__ = "job_role_skills"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    job_role_id: Mapped[int] = mapped_column(
        ForeignKey("job_roles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    skill_id: Mapped[int] = mapped_column(
        ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True
    )
    required_proficiency: Mapped[str] = mapped_column(
        String(16), default="intermediate", nullable=False
    )
    importance: Mapped[str | None] = mapped_column(String(16), default="required", nullable=True)

    __table_args__ = (
        UniqueConstraint("job_role_id", "skill_id", name="uq_job_role_skill"),
        CheckConstraint(f"required_proficiency {LEVEL_CHECK}", name="ck_job_role_skill_level"),
        CheckConstraint(
            "importance IS NULL OR importance IN ('required', 'preferred')",
            name="ck_job_role_skill_importance",
        ),
    )

    job_role: Mapped[JobRoleORM] = relationship(back_populates="skills")
    skill: Mapped[SkillORM] = relationship()


class AssessmentORM(Base):
    __tablename__ = "assessments"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    skill_id: Mapped[int | None] = mapped_column(
        ForeignKey("skills.id", ondelete="SET NULL"), nullable=True, index=True
    )
    difficulty: Mapped[str | None] = mapped_column(String(16), default="intermediate")
    time_limit_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "time_limit_minutes IS NULL OR time_limit_minutes > 0", name="ck_assessment_time_limit"
        ),
    )

    skill: Mapped[SkillORM | None] = relationship()
    questions: Mapped[list[AssessmentQuestionORM]] = relationship(
        back_populates="assessment",
        cascade="all, delete",
        order_by=lambda: [AssessmentQuestionORM.order_index, AssessmentQuestionORM.id],
    )


class AssessmentQuestionORM(Base):
    __tablename__ = "assessment_questions"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(32), default="mcq", nullable=False)
    # Variant-specific payload (options, or code_template/test_cases/...)
    options: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    correct_answer: Mapped[str | None] = mapped_column(Text, nullable=True)
    points: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        CheckConstraint("points >= 1", name="ck_question_points"),
        CheckConstraint(
            "question_type IN ('mcq', 'code_output', 'code_challenge')",
            name="ck_question_type",
        ),
    )

    assessment: Mapped[AssessmentORM] = relationship(back_populates="questions")


class AssessmentResultORM(Base):
    __tablename__ = "assessment_results"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    max_score: Mapped[int] = mapped_column(Integer, nullable=False)
    percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    calculated_level: Mapped[str] = mapped_column(String(16), nullable=False)
    answers: Mapped[dict[str, str]] = mapped_column(JSON, default=dict, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("max_score > 0 AND score >= 0 AND score <= max_score", name="ck_result_score"),
        CheckConstraint(f"calculated_level {LEVEL_CHECK}", name="ck_result_level"),
    )

    assessment: Mapped[AssessmentORM] = relationship()


class AdaptiveAssessmentORM(Base):
    __tablename__ = "adaptive_assessments"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    skill_id: Mapped[int] = mapped_column(
        ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True
    )
    difficulty_level: Mapped[str] = mapped_column(String(16), default="intermediate", nullable=False)
    # Verbatim snapshot of the generated question set
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    answers: Mapped[dict[str, str]] = mapped_column(JSON, default=dict, nullable=False)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    percentage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    calculated_level: Mapped[str | None] = mapped_column(String(16), nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    __table_args__ = (
        CheckConstraint(f"difficulty_level {LEVEL_CHECK}", name="ck_adaptive_difficulty"),
    )

    skill: Mapped[SkillORM] = relationship()
