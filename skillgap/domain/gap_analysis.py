"""
Skill gap analysis against a job role.

Two scores are computed from the same inputs and are deliberately kept apart:

- ``readiness_score``: importance weight 3 (required) or 1 (preferred), scaled
  by the required ordinal, credit clamped with ``min(user, required)``.
- ``job_role_match_score``: importance weight 2 or 1, full credit when met,
  half credit when present but below the requirement.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from ..infrastructure.exceptions import UnknownLevelError
from ..infrastructure.logging import get_logger
from .proficiency import ordinal, percentage

logger = get_logger(__name__)

GapStatus = Literal["met", "partial", "missing"]

READINESS_WEIGHTS = {"required": 3, "preferred": 1}
MATCH_WEIGHTS = {"required": 2, "preferred": 1}
RADAR_SKILL_LIMIT = 8
RADAR_NAME_LENGTH = 12


@dataclass(slots=True, frozen=True)
class LearnerSkill:
    skill_id: int
    proficiency_level: str
    skill_name: str | None = None


@dataclass(slots=True, frozen=True)
class RequiredSkill:
    skill_id: int
    skill_name: str
    required_proficiency: str
    importance: str | None = "required"
    category: str | None = None


@dataclass(slots=True)
class SkillGapEntry:
    skill_id: int
    skill_name: str
    category: str | None
    importance: str
    user_level: int  # 0 when the learner lacks the skill
    required_level: int
    gap: int
    status: GapStatus


@dataclass
class GapReport:
    entries: list[SkillGapEntry] = field(default_factory=list)
    readiness: int = 0

    @property
    def met(self) -> list[SkillGapEntry]:
        return [e for e in self.entries if e.status == "met"]

    @property
    def partial(self) -> list[SkillGapEntry]:
        return [e for e in self.entries if e.status == "partial"]

    @property
    def missing(self) -> list[SkillGapEntry]:
        return [e for e in self.entries if e.status == "missing"]

    def sorted_by_gap(self) -> list[SkillGapEntry]:
        """Largest gaps first, required before preferred, then by name."""
        return sorted(
            self.entries,
            key=lambda e: (-e.gap, e.importance != "required", e.skill_name.lower()),
        )

    def chart_rows(self) -> list[dict[str, object]]:
        rows = []
        for e in self.entries[:RADAR_SKILL_LIMIT]:
            name = e.skill_name
            if len(name) > RADAR_NAME_LENGTH:
                name = name[:RADAR_NAME_LENGTH] + "..."
            rows.append(
                {"skill": name, "current": e.user_level, "required": e.required_level, "fullMark": 3}
            )
        return rows

    def to_dict(self) -> dict[str, object]:
        return {
            "readiness": self.readiness,
            "counts": {
                "met": len(self.met),
                "partial": len(self.partial),
                "missing": len(self.missing),
            },
            "entries": [
                {
                    "skill_id": e.skill_id,
                    "skill_name": e.skill_name,
                    "category": e.category,
                    "importance": e.importance,
                    "user_level": e.user_level,
                    "required_level": e.required_level,
                    "gap": e.gap,
                    "status": e.status,
                }
                for e in self.entries
            ],
        }


def normalise_importance(importance: str | None) -> str:
    # Anything other than "required" (including null) weighs as preferred
    if importance is not None and importance.strip().lower() == "required":
        return "required"
    return "preferred"


def gap_status(gap: int) -> GapStatus:
    if gap <= 0:
        return "met"
    if gap == 1:
        return "partial"
    return "missing"


def learner_levels(user_skills: Iterable[LearnerSkill]) -> dict[int, int]:
    """Map skill id to ordinal. Unrecognised learner levels count as absent."""
    levels: dict[int, int] = {}
    for us in user_skills:
        try:
            levels[us.skill_id] = ordinal(us.proficiency_level)
        except UnknownLevelError:
            logger.warning(
                "Ignoring unrecognised proficiency %r for skill %s",
                us.proficiency_level,
                us.skill_id,
            )
    return levels


def analyze_gaps(
    user_skills: Iterable[LearnerSkill], role_skills: Iterable[RequiredSkill]
) -> GapReport:
    levels = learner_levels(user_skills)
    entries: list[SkillGapEntry] = []
    for rs in role_skills:
        required = ordinal(rs.required_proficiency)
        user = levels.get(rs.skill_id, 0)
        gap = max(0, required - user)
        entries.append(
            SkillGapEntry(
                skill_id=rs.skill_id,
                skill_name=rs.skill_name,
                category=rs.category,
                importance=normalise_importance(rs.importance),
                user_level=user,
                required_level=required,
                gap=gap,
                status=gap_status(gap),
            )
        )
    report = GapReport(entries=entries, readiness=readiness_score(entries))
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Gap analysis: %d skills, readiness %d%%", len(entries), report.readiness
        )
    return report


def readiness_score(entries: Iterable[SkillGapEntry]) -> int:
    total = 0
    earned = 0
    for e in entries:
        weight = READINESS_WEIGHTS[normalise_importance(e.importance)]
        total += weight * e.required_level
        earned += weight * min(e.user_level, e.required_level)
    return percentage(earned, total)


def job_role_match_score(
    user_skills: Iterable[LearnerSkill], role_skills: Iterable[RequiredSkill]
) -> int:
    levels = learner_levels(user_skills)
    total = 0.0
    earned = 0.0
    for rs in role_skills:
        weight = MATCH_WEIGHTS[normalise_importance(rs.importance)]
        required = ordinal(rs.required_proficiency)
        total += weight
        user = levels.get(rs.skill_id)
        if user is None:
            continue
        if user >= required:
            earned += weight
        else:
            earned += weight * 0.5
    return percentage(earned, total)
