from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from skillgap.domain.questions import parse_questions
from skillgap.infrastructure.collaborators import CodeVerdict
from skillgap.infrastructure.exceptions import CheckerUnavailableError
from skillgap.infrastructure.models import AssessmentORM, AssessmentQuestionORM
from skillgap.web.dependencies import get_db_session
from skillgap.web.main import create_application


class StubGenerator:
    async def generate(self, skill_name, skill_category, proficiency_level, question_count):
        return parse_questions(
            [
                {
                    "question_type": "mcq",
                    "question_text": f"{skill_name} {i}",
                    "options": ["right", "wrong"],
                    "correct_answer": "right",
                    "points": 1,
                }
                for i in range(question_count)
            ]
        )


class StubChecker:
    def __init__(self):
        self.available = True

    async def check(self, code, test_cases, expected_output, language):
        if not self.available:
            raise CheckerUnavailableError("connection refused")
        return CodeVerdict(is_correct="return a + b" in code, feedback="checked")


@pytest.fixture
def checker():
    return StubChecker()


@pytest.fixture
def client(SessionLocal, catalog, checker) -> TestClient:
    app = create_application()

    def override_get_db_session():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = override_get_db_session
    # Result recorders open their own transactions from the cached factory
    app.state.session_factory = SessionLocal
    app.state.question_generator = StubGenerator()
    app.state.code_checker = checker
    return TestClient(app)


def test_health_and_catalog(client, catalog):
    assert client.get("/api/health").json() == {"status": "ok"}
    skills = client.get("/api/skills").json()
    assert len(skills) == 6
    roles = client.get("/api/job-roles").json()
    assert {r["title"] for r in roles} == {"Data Analyst", "Backend Developer"}

    detail = client.get(f"/api/job-roles/{catalog['Backend Developer']}").json()
    assert [s["skill_name"] for s in detail["skills"]] == ["Python", "SQL", "Docker"]

    assert client.get("/api/job-roles/999").status_code == 404
    assert len(client.get("/api/assessments").json()) == 2


def test_profile_and_skill_gap(client, catalog):
    response = client.put(
        f"/api/users/learner-1/skills/{catalog['Python']}",
        json={"proficiency_level": "Intermediate", "years_of_experience": 2},
    )
    assert response.status_code == 200
    assert response.json()["proficiency_level"] == "intermediate"

    bad = client.put(
        f"/api/users/learner-1/skills/{catalog['Python']}", json={"proficiency_level": "guru"}
    )
    assert bad.status_code == 422
    missing = client.put("/api/users/learner-1/skills/999", json={"proficiency_level": "beginner"})
    assert missing.status_code == 404

    skills = client.get("/api/users/learner-1/skills").json()
    assert [(s["skill_name"], s["years_of_experience"]) for s in skills] == [("Python", 2)]

    role_id = catalog["Data Analyst"]
    report = client.get(f"/api/users/learner-1/skill-gap/{role_id}").json()
    # Python met (6 of 6), everything else absent: 6 / 16
    assert report["readiness"] == 38
    assert report["counts"] == {"met": 1, "partial": 0, "missing": 3}

    figure = client.get(f"/api/users/learner-1/skill-gap/{role_id}/figure").json()
    assert figure["readiness"] == 38
    assert figure["radar"]["data"][0]["name"] == "Required"

    match = client.get(f"/api/users/learner-1/job-roles/{role_id}/match").json()
    assert match["match_score"] == 33
    ranking = client.get("/api/users/learner-1/job-roles/matches").json()
    assert ranking[0]["title"] == "Data Analyst"


def test_assessment_session_flow(client, catalog):
    user = "learner-2"
    client.put(f"/api/users/{user}/skills/{catalog['JavaScript']}", json={"proficiency_level": "beginner"})

    started = client.post(
        f"/api/users/{user}/session", json={"assessment_id": catalog["JavaScript Functions"]}
    )
    assert started.status_code == 201
    view = started.json()
    assert view["state"] == "in_progress"
    assert view["remaining_seconds"] is None
    output_key, challenge_key = [q["key"] for q in view["questions"]]
    assert all(q["correct_answer"] is None for q in view["questions"])

    answered = client.put(
        f"/api/users/{user}/session/answers", json={"question_id": output_key, "value": "object"}
    )
    assert answered.json()["answers"] == {output_key: "object"}

    direct = client.put(
        f"/api/users/{user}/session/answers", json={"question_id": challenge_key, "value": "correct"}
    )
    assert direct.status_code == 422

    moved = client.post(f"/api/users/{user}/session/navigate", json={"direction": "next"})
    assert moved.json()["current_index"] == 1
    assert client.post(f"/api/users/{user}/session/navigate", json={"index": 5}).status_code == 422

    checked = client.post(
        f"/api/users/{user}/session/check-code",
        json={"question_id": challenge_key, "code": "function sum(a, b) { return a + b }"},
    )
    assert checked.json()["verdict"] == "correct"

    submitted = client.post(f"/api/users/{user}/session/submit")
    assert submitted.status_code == 200
    scored = submitted.json()
    assert scored["state"] == "scored"
    assert scored["result"]["percentage"] == 100
    assert scored["escalation"] == {"upgrade": True, "previous": "beginner", "new": "advanced"}
    assert scored["questions"][0]["correct_answer"] == "object"

    # A second submit returns the same result without recording again
    again = client.post(f"/api/users/{user}/session/submit")
    assert again.json()["result"] == scored["result"]

    history = client.get(f"/api/users/{user}/history").json()
    assert len(history) == 1
    assert history[0]["kind"] == "standard"
    progress = client.get(f"/api/users/{user}/progress").json()
    assert progress["total_assessments"] == 1
    assert progress["highest_level"] == "advanced"


def test_checker_outage_keeps_session_open(client, catalog, checker):
    user = "learner-3"
    view = client.post(
        f"/api/users/{user}/session", json={"assessment_id": catalog["JavaScript Functions"]}
    ).json()
    challenge_key = view["questions"][1]["key"]
    checker.available = False

    response = client.post(
        f"/api/users/{user}/session/check-code",
        json={"question_id": challenge_key, "code": "function sum() {}"},
    )
    assert response.status_code == 503
    assert client.get(f"/api/users/{user}/session").json()["state"] == "in_progress"


def test_abandon_session(client, catalog):
    user = "learner-4"
    assert client.get(f"/api/users/{user}/session").status_code == 404
    client.post(f"/api/users/{user}/session", json={"assessment_id": catalog["JavaScript Functions"]})

    assert client.delete(f"/api/users/{user}/session").status_code == 204
    assert client.get(f"/api/users/{user}/session").status_code == 404
    assert client.get(f"/api/users/{user}/history").json() == []


def test_adaptive_session_endpoints(client, catalog):
    user = "learner-5"
    skill_id = catalog["Docker"]
    denied = client.post(f"/api/users/{user}/adaptive-session", json={"skill_id": skill_id})
    assert denied.status_code == 404

    client.put(f"/api/users/{user}/skills/{skill_id}", json={"proficiency_level": "beginner"})
    started = client.post(
        f"/api/users/{user}/adaptive-session",
        json={"skill_id": skill_id, "difficulty_level": "advanced", "question_count": 2},
    )
    assert started.status_code == 201
    view = started.json()
    assert view["kind"] == "adaptive"
    assert [q["key"] for q in view["questions"]] == ["0", "1"]

    client.put(f"/api/users/{user}/session/answers", json={"question_id": "0", "value": "right"})
    scored = client.post(f"/api/users/{user}/session/submit").json()
    assert scored["result"]["percentage"] == 50
    assert scored["escalation"] == {"upgrade": False, "previous": "beginner", "new": "beginner"}

    history = client.get(f"/api/users/{user}/history").json()
    assert history[0]["kind"] == "adaptive"
    assert history[0]["title"] == "Docker (advanced)"


def test_malformed_question_row_is_a_conflict(client, SessionLocal, catalog):
    with SessionLocal() as s:
        broken = AssessmentORM(title="Broken choices", skill_id=catalog["SQL"])
        broken.questions.append(
            AssessmentQuestionORM(
                question_type="mcq", question_text="Pick one", options=None, correct_answer="a"
            )
        )
        s.add(broken)
        s.commit()
        broken_id = broken.id

    response = client.post("/api/users/learner-6/session", json={"assessment_id": broken_id})
    assert response.status_code == 409
    assert "malformed question" in response.json()["detail"]
    assert client.get("/api/users/learner-6/session").status_code == 404


def test_assessment_without_questions_is_a_conflict(client, SessionLocal, catalog):
    with SessionLocal() as s:
        empty = AssessmentORM(title="No questions", skill_id=catalog["SQL"])
        s.add(empty)
        s.commit()
        empty_id = empty.id

    response = client.post("/api/users/learner-7/session", json={"assessment_id": empty_id})
    assert response.status_code == 409
    assert response.json()["detail"] == "This assessment has no questions to grade."
