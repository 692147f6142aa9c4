import pytest

from skillgap.domain.gap_analysis import (
    LearnerSkill,
    RequiredSkill,
    analyze_gaps,
    gap_status,
    job_role_match_score,
    normalise_importance,
)
from skillgap.infrastructure.exceptions import UnknownLevelError

ROLE = [
    RequiredSkill(1, "Python", "advanced", "required", "Programming"),
    RequiredSkill(2, "SQL", "intermediate", "required", "Data"),
    RequiredSkill(3, "Docker", "intermediate", "preferred", "DevOps"),
]


def test_all_requirements_met_gives_full_readiness():
    mine = [LearnerSkill(1, "advanced"), LearnerSkill(2, "advanced"), LearnerSkill(3, "intermediate")]
    report = analyze_gaps(mine, ROLE)
    assert report.readiness == 100
    assert len(report.met) == 3
    assert all(e.gap == 0 for e in report.entries)


def test_readiness_weights_and_clamping():
    # Python 3*3=9 earns 3*2=6; SQL 3*2=6 earns 6 (clamped); Docker 1*2=2 earns 0
    mine = [LearnerSkill(1, "intermediate"), LearnerSkill(2, "advanced")]
    report = analyze_gaps(mine, ROLE)
    assert report.readiness == 71
    by_name = {e.skill_name: e for e in report.entries}
    assert by_name["Python"].status == "partial"
    assert by_name["SQL"].status == "met"
    assert by_name["Docker"].status == "missing"
    assert by_name["Docker"].user_level == 0


def test_readiness_never_drops_when_a_level_rises():
    levels = ["beginner", "intermediate", "advanced"]
    scores = [analyze_gaps([LearnerSkill(1, lvl)], ROLE).readiness for lvl in levels]
    assert scores == sorted(scores)


def test_empty_role_scores_zero():
    assert analyze_gaps([LearnerSkill(1, "advanced")], []).readiness == 0
    assert job_role_match_score([LearnerSkill(1, "advanced")], []) == 0


def test_unknown_required_level_raises():
    with pytest.raises(UnknownLevelError):
        analyze_gaps([], [RequiredSkill(1, "Python", "guru")])


def test_unknown_learner_level_counts_as_absent():
    report = analyze_gaps([LearnerSkill(2, "wizard")], ROLE)
    sql = next(e for e in report.entries if e.skill_name == "SQL")
    assert sql.user_level == 0
    assert sql.status == "missing"


def test_match_score_half_credit():
    # Weights 2, 2, 1: Python below requirement (1), SQL met (2), Docker absent
    mine = [LearnerSkill(1, "beginner"), LearnerSkill(2, "intermediate")]
    assert job_role_match_score(mine, ROLE) == 60


def test_importance_and_status_helpers():
    assert normalise_importance(None) == "preferred"
    assert normalise_importance(" Required ") == "required"
    assert normalise_importance("nice-to-have") == "preferred"
    assert [gap_status(g) for g in (0, 1, 2)] == ["met", "partial", "missing"]


def test_sorted_by_gap_and_chart_rows():
    report = analyze_gaps([], ROLE + [RequiredSkill(9, "Data Visualization", "beginner")])
    ordered = [e.skill_name for e in report.sorted_by_gap()]
    assert ordered[0] == "Python"
    assert ordered[-1] == "Data Visualization"
    rows = report.chart_rows()
    assert rows[-1]["skill"] == "Data Visuali..."
    assert rows[0] == {"skill": "Python", "current": 0, "required": 3, "fullMark": 3}


def test_to_dict_counts():
    report = analyze_gaps([LearnerSkill(2, "beginner")], ROLE)
    data = report.to_dict()
    assert data["counts"] == {"met": 0, "partial": 1, "missing": 2}
    assert len(data["entries"]) == 3
