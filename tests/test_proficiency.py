import pytest

from skillgap.domain.proficiency import (
    ProficiencyLevel,
    level_name,
    ordinal,
    percentage,
    round_half_up,
)
from skillgap.infrastructure.exceptions import UnknownLevelError, ValidationError


def test_parse_is_case_insensitive():
    assert ProficiencyLevel.parse("Advanced") is ProficiencyLevel.ADVANCED
    assert ProficiencyLevel.parse("  BEGINNER ") is ProficiencyLevel.BEGINNER
    assert ProficiencyLevel.parse(ProficiencyLevel.INTERMEDIATE) is ProficiencyLevel.INTERMEDIATE


def test_parse_unknown_level():
    with pytest.raises(UnknownLevelError) as exc_info:
        ProficiencyLevel.parse("expert")
    # Surfaces as a validation failure to callers
    assert isinstance(exc_info.value, ValidationError)
    with pytest.raises(UnknownLevelError):
        ProficiencyLevel.parse(None)


def test_ordinals():
    assert [ordinal(n) for n in ("beginner", "intermediate", "advanced")] == [1, 2, 3]


def test_level_name_bounds():
    assert level_name(1) == "beginner"
    assert level_name(3) == "advanced"
    for bad in (0, 4, True):
        with pytest.raises(ValueError):
            level_name(bad)


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(66.666) == 67
    assert round_half_up(0.4) == 0


def test_percentage():
    assert percentage(1, 8) == 13
    assert percentage(4, 6) == 67
    assert percentage(3, 0) == 0
