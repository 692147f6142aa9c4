from pathlib import Path

from sqlalchemy import create_engine

from skillgap.domain.questions import CodeChallengeQuestion, questions_from_rows
from skillgap.infrastructure.models import AssessmentORM, JobRoleSkillORM, SkillORM
from skillgap.utils.seed import initialise_database, load_seed_file, seed_from_json

SAMPLE_CATALOG = Path(__file__).resolve().parent.parent / "data" / "sample_catalog.json"


def test_initialise_database_reports_existing_tables():
    engine = create_engine("sqlite:///:memory:", future=True)
    assert initialise_database(engine) is False
    assert initialise_database(engine) is True


def test_seed_counts_and_idempotency(SessionLocal):
    data = load_seed_file(SAMPLE_CATALOG)
    with SessionLocal() as s:
        counts = seed_from_json(s, data)
        s.commit()
    assert (counts.skills, counts.job_roles, counts.job_role_skills) == (6, 2, 7)
    assert (counts.assessments, counts.questions) == (2, 5)

    with SessionLocal() as s:
        again = seed_from_json(s, data)
        s.commit()
        assert (again.skills, again.job_roles, again.assessments) == (0, 0, 0)
        assert s.query(SkillORM).count() == 6
        assert s.query(JobRoleSkillORM).count() == 7


def test_seeded_questions_load_as_variants(SessionLocal, catalog):
    with SessionLocal() as s:
        assessment = s.get(AssessmentORM, catalog["JavaScript Functions"])
        questions = questions_from_rows(assessment.questions)
    assert [q.question_type for q in questions] == ["code_output", "code_challenge"]
    challenge = questions[1]
    assert isinstance(challenge, CodeChallengeQuestion)
    assert challenge.test_cases[0].expected == "3"
    assert challenge.points == 3
