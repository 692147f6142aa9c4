"""
Repository entry point.

Re-exports the split repositories so callers can write
``from skillgap.infrastructure.repositories import UserSkillRepo, ...``.
"""

from __future__ import annotations

from .repositories_assessment import (
    AdaptiveAssessmentRepo,
    AssessmentRepo,
    AssessmentResultRepo,
)
from .repositories_jobrole import JobRoleRepo
from .repositories_skill import SkillRepo, UserSkillRepo

# Tell linters/formatters these imports are intentional (exported API)
__all__ = [
    "AdaptiveAssessmentRepo",
    "AssessmentRepo",
    "AssessmentResultRepo",
    "JobRoleRepo",
    "SkillRepo",
    "UserSkillRepo",
]
