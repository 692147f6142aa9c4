"""
Proficiency scale shared by the gap analyzer, grading and escalation.

Levels are compared only through their ordinals (beginner=1, intermediate=2,
advanced=3). Lookup is case-insensitive.
"""

from __future__ import annotations

import math
from enum import Enum

from ..infrastructure.exceptions import UnknownLevelError


class ProficiencyLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def ordinal(self) -> int:
        return _ORDINALS[self.value]

    @classmethod
    def parse(cls, text: str | ProficiencyLevel) -> ProficiencyLevel:
        """Return the member for ``text`` or raise ``UnknownLevelError``."""
        if isinstance(text, ProficiencyLevel):
            return text
        if not isinstance(text, str):
            raise UnknownLevelError(text)
        try:
            return cls(text.strip().lower())
        except ValueError:
            raise UnknownLevelError(text) from None


_ORDINALS = {"beginner": 1, "intermediate": 2, "advanced": 3}
_NAMES = {v: k for k, v in _ORDINALS.items()}

LEVEL_NAMES: tuple[str, ...] = tuple(_ORDINALS)


def ordinal(level: str | ProficiencyLevel) -> int:
    return ProficiencyLevel.parse(level).ordinal


def level_name(value: int) -> str:
    if isinstance(value, bool) or value not in _NAMES:
        raise ValueError(f"Ordinal must be 1, 2 or 3, got {value!r}")
    return _NAMES[value]


def round_half_up(value: float) -> int:
    """Round .5 upwards (12.5 -> 13), unlike the banker's rounding of ``round``."""
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    """Whole-number percentage of ``part`` over ``whole``; 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return round_half_up(100 * part / whole)
