"""
Custom exception classes for the skill readiness and assessment service.

Provides structured error handling with user-friendly messages and proper
error categorization for different failure scenarios.
"""

from __future__ import annotations

from typing import Any


class SkillGapError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        """Provide a user-friendly version of the error message."""
        return "An unexpected error occurred. Please try again."

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ValidationError(SkillGapError):
    """Raised when input validation fails."""

    def __init__(
        self, field: str, message: str, value: Any = None, details: dict[str, Any] | None = None
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=f"Validation failed for field '{field}': {message}",
            details=details or {"field": field, "value": value},
            user_message=f"Invalid {field.replace('_', ' ')}: {message}",
        )

    def _get_default_user_message(self) -> str:
        return f"Please check your input for {self.field.replace('_', ' ')} and try again."


class UnknownLevelError(ValidationError):
    """Raised when a proficiency string is not one of the canonical level names."""

    def __init__(self, level: Any):
        self.level = level
        super().__init__(
            field="proficiency_level",
            message=f"unknown proficiency level {level!r}; expected beginner, intermediate or advanced",
            value=level,
        )


class DatabaseError(SkillGapError):
    """Raised when database operations fail."""

    def __init__(self, message: str, operation: str, details: dict[str, Any] | None = None):
        self.operation = operation
        super().__init__(
            message=f"Database error during {operation}: {message}",
            details=details or {"operation": operation},
            user_message="A database error occurred. Please try again in a moment.",
        )

    def _get_default_user_message(self) -> str:
        return "Unable to save your changes. Please try again."


class ConnectionError(DatabaseError):
    """Raised when database connection fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, operation="connection", details=details)

    def _get_default_user_message(self) -> str:
        return "Unable to connect to the database. Please check your connection and try again."


class IntegrityError(DatabaseError):
    """Raised when database integrity constraints are violated."""

    def __init__(
        self,
        message: str,
        constraint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.constraint = constraint
        super().__init__(
            message=message,
            operation="integrity_check",
            details=details or {"constraint": constraint},
        )

    def _get_default_user_message(self) -> str:
        if self.constraint:
            if "unique" in self.constraint.lower():
                return "This item already exists. Please use a different name."
            elif "foreign" in self.constraint.lower():
                return "Referenced item no longer exists. Please refresh and try again."
        return "Data integrity error. Please check your input and try again."


class NotFoundError(SkillGapError):
    """Raised when a requested record does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            message=f"{entity} with ID {entity_id} not found",
            details={"entity": entity, "id": entity_id},
        )


class SkillNotFoundError(NotFoundError):
    """Raised when a skill is not found."""

    def __init__(self, skill_id: int):
        super().__init__("Skill", skill_id)

    def _get_default_user_message(self) -> str:
        return "The selected skill could not be found. Please refresh and try again."


class JobRoleNotFoundError(NotFoundError):
    """Raised when a job role is not found."""

    def __init__(self, job_role_id: int):
        super().__init__("JobRole", job_role_id)

    def _get_default_user_message(self) -> str:
        return "The selected job role could not be found. Please choose a different role."


class AssessmentNotFoundError(NotFoundError):
    """Raised when an assessment is not found or is inactive."""

    def __init__(self, assessment_id: int):
        super().__init__("Assessment", assessment_id)

    def _get_default_user_message(self) -> str:
        return "This assessment is not available."


class UserSkillNotFoundError(NotFoundError):
    """Raised when the learner has no record for the requested skill."""

    def __init__(self, user_id: str, skill_id: int):
        self.user_id = user_id
        self.skill_id = skill_id
        super().__init__("UserSkill", f"{user_id}/{skill_id}")

    def _get_default_user_message(self) -> str:
        return "Add this skill to your profile before taking an adaptive assessment."


class ActiveSessionNotFoundError(NotFoundError):
    """Raised when a learner has no assessment session in progress."""

    def __init__(self, user_id: str):
        super().__init__("AssessmentSession", user_id)

    def _get_default_user_message(self) -> str:
        return "No assessment is in progress. Start an assessment first."


class InvalidSessionStateError(SkillGapError):
    """Raised when an assessment session operation is not valid in its current state."""

    def __init__(
        self,
        message: str,
        state: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.state = state
        super().__init__(
            message=message,
            details=details or {"state": state},
            user_message="This action is not available at this point of the assessment.",
        )


class DuplicateSubmissionError(InvalidSessionStateError):
    """Raised internally when a second submit trigger reaches a session already submitting."""

    def __init__(self, trigger: str, state: str):
        self.trigger = trigger
        super().__init__(
            message=f"Ignoring {trigger} submit: session is {state}",
            state=state,
            details={"trigger": trigger, "state": state},
        )


class BusinessLogicError(SkillGapError):
    """Raised when business logic constraints are violated."""

    def __init__(
        self, message: str, rule: str | None = None, details: dict[str, Any] | None = None
    ):
        self.rule = rule
        super().__init__(
            message=message,
            details=details or {"rule": rule},
            user_message="This operation cannot be completed due to business rules.",
        )


class NoGradableQuestionsError(BusinessLogicError):
    """Raised when an attempt with no gradable points reaches scoring."""

    def __init__(self, question_count: int = 0):
        self.question_count = question_count
        super().__init__(
            message=f"Cannot grade an attempt with zero total points ({question_count} questions)",
            rule="max_score_positive",
            details={"question_count": question_count},
        )
        self.user_message = "This assessment has no questions to grade."


class InvalidQuestionDataError(BusinessLogicError):
    """Raised when a stored question row does not fit its question type."""

    def __init__(self, question_id: int | None, reason: str):
        self.question_id = question_id
        super().__init__(
            message=f"Question {question_id} is malformed: {reason}",
            rule="assessment_questions_valid",
            details={"question_id": question_id, "reason": reason},
        )
        self.user_message = "This assessment has a malformed question and cannot be started."


class CollaboratorUnavailableError(SkillGapError):
    """Raised when an external collaborator call fails or returns a non-conforming shape."""

    retryable = True
    collaborator = "collaborator"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"{self.collaborator} unavailable: {message}",
            details=details or {"collaborator": self.collaborator},
        )

    def _get_default_user_message(self) -> str:
        return "An external service is unavailable right now. Please try again."


class GeneratorUnavailableError(CollaboratorUnavailableError):
    """Raised when the question generator fails or returns malformed questions."""

    collaborator = "question_generator"

    def _get_default_user_message(self) -> str:
        return "Could not generate an assessment right now. Please try again."


class CheckerUnavailableError(CollaboratorUnavailableError):
    """Raised when the code checker fails or returns a malformed verdict."""

    collaborator = "code_checker"

    def _get_default_user_message(self) -> str:
        return "Your code could not be checked right now. Your answers are kept; please retry."


def handle_database_error(e: Exception, operation: str = "database operation") -> DatabaseError:
    """
    Convert generic database exceptions to appropriate custom exceptions.

    Args:
        e: The original exception
        operation: Description of the operation that failed

    Returns:
        Appropriate DatabaseError subclass

    Example:
        >>> try:
        ...     session.commit()
        >>> except Exception as e:
        ...     raise handle_database_error(e, "commit transaction")
    """
    error_msg = str(e).lower()

    if "connection" in error_msg or "timeout" in error_msg:
        return ConnectionError(str(e))
    elif "unique constraint" in error_msg or "duplicate" in error_msg:
        return IntegrityError(str(e), constraint="unique")
    elif "foreign key" in error_msg or "foreign_key" in error_msg:
        return IntegrityError(str(e), constraint="foreign_key")
    elif "check constraint" in error_msg:
        return IntegrityError(str(e), constraint="check")
    else:
        return DatabaseError(str(e), operation)


def create_user_friendly_error_message(error: Exception) -> str:
    """
    Create a user-friendly error message from any exception.

    Example:
        >>> error = ValidationError("years_of_experience", "must be zero or more")
        >>> create_user_friendly_error_message(error)
        'Invalid years of experience: must be zero or more'
    """
    if isinstance(error, SkillGapError):
        return error.user_message

    error_type = type(error).__name__
    messages = {
        "ValueError": "Invalid input provided. Please check your data and try again.",
        "KeyError": "Required information is missing. Please check your input.",
        "TypeError": "Incorrect data type provided. Please check your input format.",
    }
    return messages.get(
        error_type, "An unexpected error occurred. Please try again or contact support."
    )


def log_error_details(error: Exception, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create structured error details for logging.

    Args:
        error: The exception to log
        context: Additional context information

    Returns:
        Dictionary with structured error details
    """
    details = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
    }

    if isinstance(error, SkillGapError):
        details.update({"user_message": error.user_message, "error_details": error.details})

    return details
