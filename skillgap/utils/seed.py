from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from skillgap.domain.proficiency import ProficiencyLevel
from skillgap.domain.questions import parse_question, row_payload
from skillgap.infrastructure.logging import get_logger
from skillgap.infrastructure.models import (
    AssessmentORM,
    AssessmentQuestionORM,
    Base,
    JobRoleORM,
    JobRoleSkillORM,
    SkillORM,
)

logger = get_logger(__name__)


def initialise_database(engine: Engine) -> bool:
    """
    Ensure all ORM tables exist.

    Returns:
        True if every table already existed before this call, False if at least one table
        needed to be created.
    """

    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    expected_tables = [table.name for table in Base.metadata.sorted_tables]
    already_exists = all(table in existing_tables for table in expected_tables)
    Base.metadata.create_all(engine)
    return already_exists


@dataclass
class SeedCounts:
    skills: int = 0
    job_roles: int = 0
    job_role_skills: int = 0
    assessments: int = 0
    questions: int = 0


def load_seed_file(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Seed file {path} must contain a JSON object")
    return data


def _skill_by_name(session: Session, cache: dict[str, SkillORM], name: str) -> SkillORM:
    skill = cache.get(name)
    if skill is None:
        skill = session.query(SkillORM).filter_by(name=name).one_or_none()
        if skill is None:
            raise ValueError(f"Unknown skill {name!r} referenced in seed data")
        cache[name] = skill
    return skill


def seed_from_json(session: Session, data: dict[str, Any]) -> SeedCounts:
    """
    Load catalog data: skills, job roles with requirements, and assessments with questions.

    Existing skills and roles are updated by name/title; assessments whose
    title already exists are left untouched. The caller commits.
    """
    counts = SeedCounts()
    skills: dict[str, SkillORM] = {}

    for item in data.get("skills", []):
        name = item["name"].strip()
        skill = session.query(SkillORM).filter_by(name=name).one_or_none()
        if skill is None:
            skill = SkillORM(name=name, category=item.get("category") or "General")
            session.add(skill)
            counts.skills += 1
        else:
            skill.category = item.get("category") or skill.category
        skill.description = item.get("description") or skill.description
        session.flush()
        skills[name] = skill

    for item in data.get("job_roles", []):
        title = item["title"].strip()
        role = session.query(JobRoleORM).filter_by(title=title).one_or_none()
        if role is None:
            role = JobRoleORM(title=title)
            session.add(role)
            counts.job_roles += 1
        role.description = item.get("description")
        role.industry = item.get("industry")
        role.experience_level = item.get("experience_level")
        session.flush()

        for req in item.get("skills", []):
            skill = _skill_by_name(session, skills, req["skill"])
            level = ProficiencyLevel.parse(req.get("required_proficiency", "intermediate")).value
            entry = (
                session.query(JobRoleSkillORM)
                .filter_by(job_role_id=role.id, skill_id=skill.id)
                .one_or_none()
            )
            if entry is None:
                entry = JobRoleSkillORM(job_role_id=role.id, skill_id=skill.id)
                session.add(entry)
                counts.job_role_skills += 1
            entry.required_proficiency = level
            entry.importance = req.get("importance", "required")
        session.flush()

    for item in data.get("assessments", []):
        title = item["title"].strip()
        if session.query(AssessmentORM).filter_by(title=title).first() is not None:
            logger.info(f"Assessment {title!r} already present; skipping")
            continue
        skill = _skill_by_name(session, skills, item["skill"]) if item.get("skill") else None
        assessment = AssessmentORM(
            title=title,
            description=item.get("description"),
            skill_id=skill.id if skill is not None else None,
            difficulty=ProficiencyLevel.parse(item.get("difficulty", "intermediate")).value,
            time_limit_minutes=item.get("time_limit_minutes"),
            is_active=item.get("is_active", True),
        )
        session.add(assessment)
        session.flush()
        counts.assessments += 1

        for index, raw in enumerate(item.get("questions", [])):
            question = parse_question({"order_index": index, **raw})
            session.add(
                AssessmentQuestionORM(
                    assessment_id=assessment.id,
                    question_text=question.question_text,
                    question_type=question.question_type,
                    options=row_payload(question),
                    correct_answer=question.correct_answer,
                    points=question.points,
                    order_index=question.order_index,
                )
            )
            counts.questions += 1
        session.flush()

    logger.info(
        f"Seeded {counts.skills} skills, {counts.job_roles} job roles, "
        f"{counts.assessments} assessments ({counts.questions} questions)"
    )
    return counts
