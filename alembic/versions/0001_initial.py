"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

LEVEL_CHECK = "IN ('beginner', 'intermediate', 'advanced')"


def upgrade() -> None:
    op.create_table(
        "skills",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "job_roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("industry", sa.String(length=255), nullable=True),
        sa.Column("experience_level", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("title"),
    )
    op.create_table(
        "user_skills",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("skill_id", sa.Integer(), nullable=False),
        sa.Column("proficiency_level", sa.String(length=16), nullable=False),
        sa.Column("years_of_experience", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["skill_id"], ["skills.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "skill_id", name="uq_user_skill"),
        sa.CheckConstraint(f"proficiency_level {LEVEL_CHECK}", name="ck_user_skill_level"),
        sa.CheckConstraint("years_of_experience >= 0", name="ck_user_skill_years"),
    )
    op.create_index("ix_user_skills_user_id", "user_skills", ["user_id"], unique=False)
    op.create_index("ix_user_skills_skill_id", "user_skills", ["skill_id"], unique=False)

    op.create_table(
        "job_role_skills",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_role_id", sa.Integer(), nullable=False),
        sa.Column("skill_id", sa.Integer(), nullable=False),
        sa.Column("required_proficiency", sa.String(length=16), nullable=False),
        sa.Column("importance", sa.String(length=16), nullable=True),
        sa.ForeignKeyConstraint(["job_role_id"], ["job_roles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["skill_id"], ["skills.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_role_id", "skill_id", name="uq_job_role_skill"),
        sa.CheckConstraint(f"required_proficiency {LEVEL_CHECK}", name="ck_job_role_skill_level"),
        sa.CheckConstraint(
            "importance IS NULL OR importance IN ('required', 'preferred')",
            name="ck_job_role_skill_importance",
        ),
    )
    op.create_index(
        "ix_job_role_skills_job_role_id", "job_role_skills", ["job_role_id"], unique=False
    )
    op.create_index("ix_job_role_skills_skill_id", "job_role_skills", ["skill_id"], unique=False)

    op.create_table(
        "assessments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("skill_id", sa.Integer(), nullable=True),
        sa.Column("difficulty", sa.String(length=16), nullable=True),
        sa.Column("time_limit_minutes", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["skill_id"], ["skills.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "time_limit_minutes IS NULL OR time_limit_minutes > 0", name="ck_assessment_time_limit"
        ),
    )
    op.create_index("ix_assessments_skill_id", "assessments", ["skill_id"], unique=False)

    op.create_table(
        "assessment_questions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("assessment_id", sa.Integer(), nullable=False),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_type", sa.String(length=32), nullable=False),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("correct_answer", sa.Text(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("points >= 1", name="ck_question_points"),
        sa.CheckConstraint(
            "question_type IN ('mcq', 'code_output', 'code_challenge')", name="ck_question_type"
        ),
    )
    op.create_index(
        "ix_assessment_questions_assessment_id",
        "assessment_questions",
        ["assessment_id"],
        unique=False,
    )

    op.create_table(
        "assessment_results",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("assessment_id", sa.Integer(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("max_score", sa.Integer(), nullable=False),
        sa.Column("percentage", sa.Integer(), nullable=False),
        sa.Column("calculated_level", sa.String(length=16), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "max_score > 0 AND score >= 0 AND score <= max_score", name="ck_result_score"
        ),
        sa.CheckConstraint(f"calculated_level {LEVEL_CHECK}", name="ck_result_level"),
    )
    op.create_index(
        "ix_assessment_results_user_id", "assessment_results", ["user_id"], unique=False
    )
    op.create_index(
        "ix_assessment_results_assessment_id",
        "assessment_results",
        ["assessment_id"],
        unique=False,
    )

    op.create_table(
        "adaptive_assessments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("skill_id", sa.Integer(), nullable=False),
        sa.Column("difficulty_level", sa.String(length=16), nullable=False),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("max_score", sa.Integer(), nullable=True),
        sa.Column("percentage", sa.Integer(), nullable=True),
        sa.Column("calculated_level", sa.String(length=16), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["skill_id"], ["skills.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(f"difficulty_level {LEVEL_CHECK}", name="ck_adaptive_difficulty"),
    )
    op.create_index(
        "ix_adaptive_assessments_user_id", "adaptive_assessments", ["user_id"], unique=False
    )
    op.create_index(
        "ix_adaptive_assessments_skill_id", "adaptive_assessments", ["skill_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("adaptive_assessments")
    op.drop_table("assessment_results")
    op.drop_table("assessment_questions")
    op.drop_table("assessments")
    op.drop_table("job_role_skills")
    op.drop_table("user_skills")
    op.drop_table("job_roles")
    op.drop_table("skills")
