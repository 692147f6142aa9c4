"""
Pydantic schemas for validating learner input before it reaches the services.
"""

from __future__ import annotations

import re
from html import unescape
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .proficiency import ProficiencyLevel

USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]{1,64}$")


class BaseValidationSchema(BaseModel):
    """Base schema with common validation utilities."""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    @field_validator("*", mode="before")
    @classmethod
    def sanitize_strings(cls, v):
        """Strip markup and control characters from free text."""
        if isinstance(v, str):
            cleaned = unescape(v.strip())
            cleaned = re.sub(
                r"<\s*script[^>]*>.*?<\s*/\s*script\s*>",
                "",
                cleaned,
                flags=re.IGNORECASE | re.DOTALL,
            )
            cleaned = re.sub(r"<[^>]+>", "", cleaned)
            cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", "", cleaned)
            return cleaned
        return v


def _normalise_level(v: Any) -> str:
    # Raises UnknownLevelError, which pydantic does not wrap (not a ValueError)
    return ProficiencyLevel.parse(v).value


class UserIdInput(BaseValidationSchema):
    user_id: str = Field(..., min_length=1, max_length=64)

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v):
        if not USER_ID_PATTERN.match(v):
            raise ValueError("User id may only contain letters, digits and . _ @ -")
        return v


class UserSkillInput(UserIdInput):
    """Validation schema for adding or updating a learner's skill."""

    skill_id: int = Field(..., ge=1)
    proficiency_level: str
    years_of_experience: int | None = Field(None, ge=0, le=80)

    @field_validator("proficiency_level")
    @classmethod
    def validate_level(cls, v):
        return _normalise_level(v)


class AdaptiveRequestInput(UserIdInput):
    """Validation schema for generating an adaptive assessment."""

    skill_id: int = Field(..., ge=1)
    difficulty_level: str = "intermediate"
    question_count: int | None = Field(None, ge=1)

    @field_validator("difficulty_level")
    @classmethod
    def validate_difficulty(cls, v):
        return _normalise_level(v)


class ValidationErrorDetail(BaseModel):
    """Schema for validation error details."""

    field: str
    message: str
    value: Any = None


class ValidationResponse(BaseModel):
    """Schema for validation responses."""

    success: bool
    errors: list[ValidationErrorDetail] = []
    data: dict[str, Any] | None = None


def validate_input(schema_class: type[BaseModel], data: dict[str, Any]) -> ValidationResponse:
    """
    Centralized validation function that returns structured validation results.

    Example:
        >>> result = validate_input(UserSkillInput, {"user_id": "u1", "skill_id": 1,
        ...                                          "proficiency_level": "Advanced"})
        >>> result.data["proficiency_level"]
        'advanced'
    """
    try:
        validated = schema_class(**data)
        return ValidationResponse(success=True, data=validated.model_dump())
    except Exception as e:
        errors = []
        if hasattr(e, "errors"):  # Pydantic validation errors
            for error in e.errors():
                errors.append(
                    ValidationErrorDetail(
                        field=".".join(str(x) for x in error["loc"]),
                        message=error["msg"],
                        value=error.get("input"),
                    )
                )
        elif hasattr(e, "field"):  # our own ValidationError subclasses
            errors.append(ValidationErrorDetail(field=e.field, message=e.message, value=e.value))
        else:
            errors.append(ValidationErrorDetail(field="general", message=str(e)))

        return ValidationResponse(success=False, errors=errors)
