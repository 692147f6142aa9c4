from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..infrastructure.models import JobRoleORM, UserSkillORM
from ..infrastructure.repositories import JobRoleRepo, UserSkillRepo
from .gap_analysis import (
    GapReport,
    LearnerSkill,
    RequiredSkill,
    analyze_gaps,
    job_role_match_score,
)


def learner_skills(rows: list[UserSkillORM]) -> list[LearnerSkill]:
    return [
        LearnerSkill(
            skill_id=r.skill_id,
            proficiency_level=r.proficiency_level,
            skill_name=r.skill.name if r.skill is not None else None,
        )
        for r in rows
    ]


def required_skills(role: JobRoleORM) -> list[RequiredSkill]:
    return [
        RequiredSkill(
            skill_id=rs.skill_id,
            skill_name=rs.skill.name,
            required_proficiency=rs.required_proficiency,
            importance=rs.importance,
            category=rs.skill.category,
        )
        for rs in sorted(role.skills, key=lambda rs: rs.id)
    ]


@dataclass
class RoleMatch:
    job_role_id: int
    title: str
    match_score: int
    skill_count: int


class ReadinessService:
    """Loads a learner's skills and a job role, then runs the pure gap/match scoring."""

    def __init__(self, s: Session, logger: logging.Logger | None = None):
        self.s = s
        self.logger = logger or logging.getLogger(__name__)

    def gap_report(self, user_id: str, job_role_id: int) -> GapReport:
        """
        Full gap report for one learner against one job role.
        - Raises JobRoleNotFoundError for an unknown role.
        - A role with no skills gives an empty report with readiness 0.
        """
        try:
            role = JobRoleRepo(self.s).get_with_skills(job_role_id)
            mine = learner_skills(UserSkillRepo(self.s).for_user(user_id))
            report = analyze_gaps(mine, required_skills(role))
            self.logger.debug(
                "Gap report for %s against role %s: %d skills, readiness %d",
                user_id,
                job_role_id,
                len(report.entries),
                report.readiness,
            )
            return report
        except SQLAlchemyError:
            self.logger.exception(
                "Database error building gap report for %s / role %s", user_id, job_role_id
            )
            raise

    def match_score(self, user_id: str, job_role_id: int) -> int:
        """Half-credit match score used on the job-role detail view."""
        try:
            role = JobRoleRepo(self.s).get_with_skills(job_role_id)
            mine = learner_skills(UserSkillRepo(self.s).for_user(user_id))
            return job_role_match_score(mine, required_skills(role))
        except SQLAlchemyError:
            self.logger.exception(
                "Database error computing match score for %s / role %s", user_id, job_role_id
            )
            raise

    def rank_roles(self, user_id: str) -> list[RoleMatch]:
        """Match score for every job role, best first."""
        try:
            mine = learner_skills(UserSkillRepo(self.s).for_user(user_id))
            results = []
            for role in JobRoleRepo(self.s).list_all():
                needed = required_skills(role)
                results.append(
                    RoleMatch(role.id, role.title, job_role_match_score(mine, needed), len(needed))
                )
            results.sort(key=lambda m: (-m.match_score, m.title))
            self.logger.info("Ranked %d job roles for %s", len(results), user_id)
            return results
        except SQLAlchemyError:
            self.logger.exception("Database error ranking job roles for %s", user_id)
            raise
