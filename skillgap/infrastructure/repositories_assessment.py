# skillgap/infrastructure/repositories_assessment.py
from __future__ import annotations

import builtins
from typing import Any

from sqlalchemy.orm import Session, selectinload

from .exceptions import AssessmentNotFoundError
from .logging import log_database_operation as log_op
from .models import AdaptiveAssessmentORM, AssessmentORM, AssessmentResultORM
from .repositories_base import BaseRepository as GenericBaseRepository


class AssessmentRepo(GenericBaseRepository[AssessmentORM]):
    model = AssessmentORM

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("assessment.get_active")
    def get_active_with_questions(self, id_: Any) -> AssessmentORM:
        assessment = (
            self.s.query(AssessmentORM)
            .options(selectinload(AssessmentORM.questions), selectinload(AssessmentORM.skill))
            .filter(AssessmentORM.id == id_, AssessmentORM.is_active.is_(True))
            .one_or_none()
        )
        if assessment is None:
            raise AssessmentNotFoundError(id_)
        return assessment

    @log_op("assessment.list_active")
    def list_active(self) -> builtins.list[AssessmentORM]:
        return self.list(AssessmentORM.is_active.is_(True), order_by=[AssessmentORM.title])

    @log_op("assessment.create")
    def create(self, **fields: Any) -> AssessmentORM:
        return super().create(**fields)


class AssessmentResultRepo(GenericBaseRepository[AssessmentResultORM]):
    model = AssessmentResultORM

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("assessment_result.create")
    def create(self, **fields: Any) -> AssessmentResultORM:
        return super().create(**fields)

    @log_op("assessment_result.for_user")
    def for_user(self, user_id: str) -> builtins.list[AssessmentResultORM]:
        return list(
            self.s.query(AssessmentResultORM)
            .options(selectinload(AssessmentResultORM.assessment))
            .filter(AssessmentResultORM.user_id == user_id)
            .order_by(AssessmentResultORM.completed_at.desc(), AssessmentResultORM.id.desc())
            .all()
        )


class AdaptiveAssessmentRepo(GenericBaseRepository[AdaptiveAssessmentORM]):
    model = AdaptiveAssessmentORM

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("adaptive_assessment.create")
    def create(self, **fields: Any) -> AdaptiveAssessmentORM:
        return super().create(**fields)

    @log_op("adaptive_assessment.for_user")
    def for_user(self, user_id: str) -> builtins.list[AdaptiveAssessmentORM]:
        return list(
            self.s.query(AdaptiveAssessmentORM)
            .options(selectinload(AdaptiveAssessmentORM.skill))
            .filter(
                AdaptiveAssessmentORM.user_id == user_id,
                AdaptiveAssessmentORM.completed_at.isnot(None),
            )
            .order_by(AdaptiveAssessmentORM.completed_at.desc(), AdaptiveAssessmentORM.id.desc())
            .all()
        )
