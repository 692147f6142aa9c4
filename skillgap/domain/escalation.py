from __future__ import annotations

from dataclasses import dataclass

from .proficiency import ProficiencyLevel, ordinal


@dataclass(slots=True, frozen=True)
class EscalationDecision:
    upgrade: bool
    previous: str | None
    new: str | None


def decide_escalation(current_level: str | None, calculated_level: str) -> EscalationDecision:
    """
    Upgrade-only update of a stored proficiency.

    No stored level means there is nothing to upgrade; a lower or equal
    calculated level keeps the stored one.
    """
    if current_level is None:
        return EscalationDecision(upgrade=False, previous=None, new=None)
    current = ProficiencyLevel.parse(current_level)
    calculated = ProficiencyLevel.parse(calculated_level)
    if ordinal(calculated) > ordinal(current):
        return EscalationDecision(upgrade=True, previous=current.value, new=calculated.value)
    return EscalationDecision(upgrade=False, previous=current.value, new=current.value)
