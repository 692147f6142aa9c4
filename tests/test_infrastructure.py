"""
Tests for the ambient infrastructure: input validation, error handling,
logging, configuration and repository behaviour.
"""

import asyncio
import os
import tempfile

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError as SQLIntegrityError

from skillgap.domain.schemas import AdaptiveRequestInput, UserSkillInput, validate_input
from skillgap.infrastructure.config import (
    CollaboratorConfig,
    DatabaseConfig,
    get_settings,
    override_settings,
    reset_settings,
)
from skillgap.infrastructure.db import create_database_engine
from skillgap.infrastructure.exceptions import (
    IntegrityError,
    SkillNotFoundError,
    UserSkillNotFoundError,
    ValidationError,
    create_user_friendly_error_message,
    handle_database_error,
)
from skillgap.infrastructure.logging import (
    LogContext,
    clear_context,
    configure_test_logging,
    context_filter,
    get_logger,
    set_context,
    setup_logging,
)
from skillgap.infrastructure.repositories import JobRoleRepo, SkillRepo, UserSkillRepo


class TestPydanticValidation:
    """Input validation for learner requests."""

    def test_user_skill_validation_normalises_level(self):
        result = validate_input(
            UserSkillInput,
            {"user_id": "learner-1", "skill_id": 3, "proficiency_level": " Advanced "},
        )

        assert result.success is True
        assert result.data is not None
        assert result.data["proficiency_level"] == "advanced"
        assert result.data["years_of_experience"] is None

    def test_user_skill_validation_failure(self):
        result = validate_input(
            UserSkillInput,
            {"user_id": "learner-1", "skill_id": 0, "proficiency_level": "beginner", "years_of_experience": -1},
        )

        assert result.success is False
        assert {e.field for e in result.errors} == {"skill_id", "years_of_experience"}

    def test_unknown_level_is_reported_as_a_field_error(self):
        result = validate_input(
            AdaptiveRequestInput,
            {"user_id": "learner-1", "skill_id": 1, "difficulty_level": "expert"},
        )

        assert result.success is False
        assert result.errors[0].field == "proficiency_level"
        assert result.errors[0].value == "expert"

    def test_input_sanitization(self):
        result = validate_input(
            UserSkillInput,
            {
                "user_id": "  learner-1\x00 ",
                "skill_id": 1,
                "proficiency_level": "<b>beginner</b>",
            },
        )

        assert result.success is True
        assert result.data is not None
        assert result.data["user_id"] == "learner-1"
        assert result.data["proficiency_level"] == "beginner"


class TestErrorHandling:
    """Error types and user-facing messages."""

    def test_validation_error_creation(self):
        error = ValidationError("years_of_experience", "must be zero or more", -1)

        assert error.field == "years_of_experience"
        assert "must be zero or more" in str(error)
        assert error.user_message == "Invalid years of experience: must be zero or more"
        assert error.details == {"field": "years_of_experience", "value": -1}

    def test_database_error_handling(self):
        original_error = SQLIntegrityError(
            "statement", {}, Exception("UNIQUE constraint failed: user_skills.user_id")
        )
        db_error = handle_database_error(original_error, "upsert user skill")

        assert isinstance(db_error, IntegrityError)
        assert db_error.constraint == "unique"
        assert "already exists" in db_error.user_message

    def test_not_found_messages(self):
        assert "Skill" in SkillNotFoundError(7).message
        assert "learner-1/3" in UserSkillNotFoundError("learner-1", 3).message

    def test_user_friendly_error_messages(self):
        friendly_msg = create_user_friendly_error_message(ValidationError("user_id", "cannot be empty"))
        assert "user id" in friendly_msg.lower()

        friendly_msg = create_user_friendly_error_message(ValueError("Some technical error"))
        assert "try again" in friendly_msg.lower()


class TestLogging:
    """Structured logging setup."""

    def test_logger_is_namespaced(self):
        assert get_logger("test_module").name == "skillgap.test_module"
        assert get_logger("skillgap.domain.session").name == "skillgap.domain.session"

    def test_logging_configuration(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = os.path.join(temp_dir, "test.log")
            try:
                setup_logging(level="DEBUG", log_file=log_file, structured=True, enable_console=False)
                set_context(user_id="learner-1", assessment_id=4)
                get_logger("test").info("Test message")
                clear_context()

                assert os.path.exists(log_file)
            finally:
                configure_test_logging()

    def test_log_context_is_scoped(self):
        clear_context()
        set_context(user_id="learner-1")
        with LogContext(operation="grade"):
            assert context_filter.context == {"user_id": "learner-1", "operation": "grade"}
        assert context_filter.context == {"user_id": "learner-1"}
        clear_context()
        assert context_filter.context == {}

    def test_log_context_does_not_leak_between_tasks(self):
        async def learner(user_id):
            set_context(user_id=user_id)
            await asyncio.sleep(0)
            return context_filter.context["user_id"]

        async def both():
            return await asyncio.gather(learner("learner-1"), learner("learner-2"))

        assert asyncio.run(both()) == ["learner-1", "learner-2"]


class TestConfiguration:
    """Settings sections and overrides."""

    def test_database_config_sqlite(self):
        config = DatabaseConfig(backend="sqlite", sqlite_path=":memory:")

        assert config.get_connection_url() == "sqlite:///:memory:"
        assert config.get_engine_options()["connect_args"] == {"check_same_thread": False}

    def test_database_config_mysql(self):
        config = DatabaseConfig(
            backend="mysql",
            mysql_host="localhost",
            mysql_user="test",
            mysql_password="pass",
            mysql_database="skills",
        )

        url = config.get_connection_url()
        assert url.startswith("mysql+pymysql://")
        assert "test:pass@localhost" in url
        assert "connect_args" not in config.get_engine_options()

    def test_database_configuration_validation(self):
        with pytest.raises(ValueError):
            DatabaseConfig(backend="invalid")
        with pytest.raises(ValueError):
            DatabaseConfig(backend="mysql", mysql_host="localhost", mysql_user="")

    def test_collaborator_headers(self):
        assert "Authorization" not in CollaboratorConfig().request_headers()
        headers = CollaboratorConfig(api_key="token").request_headers()
        assert headers["Authorization"] == "Bearer token"

    def test_settings_override(self):
        try:
            settings = override_settings(app_environment="testing", assessment_max_generated_questions=3)
            assert settings.is_testing()
            assert settings.assessment.max_generated_questions == 3
            assert get_settings() is settings
        finally:
            os.environ.pop("APP_ENVIRONMENT", None)
            os.environ.pop("ASSESSMENT_MAX_GENERATED_QUESTIONS", None)
            reset_settings()

    def test_sqlite_engine_enforces_foreign_keys(self):
        engine = create_database_engine(DatabaseConfig(backend="sqlite", sqlite_path=":memory:"))
        try:
            with engine.connect() as conn:
                assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        finally:
            engine.dispose()


class TestRepositoryPatterns:
    """Repository lookups against the seeded catalog."""

    def test_skill_lookups(self, SessionLocal, catalog):
        with SessionLocal() as s:
            repo = SkillRepo(s)
            assert repo.by_name("SQL").id == catalog["SQL"]
            assert [sk.category for sk in repo.list_all()] == sorted(sk.category for sk in repo.list_all())
            with pytest.raises(SkillNotFoundError):
                repo.get_by_id_required(999)

    def test_user_skill_upsert_keeps_one_row(self, SessionLocal, catalog):
        with SessionLocal() as s:
            repo = UserSkillRepo(s)
            repo.upsert("learner-1", catalog["SQL"], "beginner", years_of_experience=1)
            repo.upsert("learner-1", catalog["SQL"], "advanced")
            rows = repo.for_user("learner-1")

            assert len(rows) == 1
            assert rows[0].proficiency_level == "advanced"
            assert rows[0].years_of_experience == 1
            assert rows[0].skill.name == "SQL"

    def test_job_role_eager_loads_requirements(self, SessionLocal, catalog):
        with SessionLocal() as s:
            role = JobRoleRepo(s).get_with_skills(catalog["Data Analyst"])
            role_skills = list(role.skills)

        # Relationships were loaded before the session closed
        assert {rs.skill.name for rs in role_skills} == {
            "SQL",
            "Python",
            "Data Visualization",
            "Communication",
        }
