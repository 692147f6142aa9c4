# skillgap/infrastructure/repositories_skill.py
from __future__ import annotations

import builtins
from typing import Any

from sqlalchemy.orm import Session, joinedload

from .exceptions import SkillNotFoundError
from .logging import log_database_operation as log_op
from .models import SkillORM, UserSkillORM
from .repositories_base import BaseRepository as GenericBaseRepository


class SkillRepo(GenericBaseRepository[SkillORM]):
    model = SkillORM

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("skill.get_required")
    def get_by_id_required(self, id_: Any) -> SkillORM:
        skill = self.get(id_)
        if skill is None:
            raise SkillNotFoundError(id_)
        return skill

    @log_op("skill.by_name")
    def by_name(self, name: str) -> SkillORM | None:
        return self.s.query(SkillORM).filter(SkillORM.name == name).one_or_none()

    @log_op("skill.list_all")
    def list_all(self) -> builtins.list[SkillORM]:
        return self.list(order_by=[SkillORM.category, SkillORM.name])

    @log_op("skill.create")
    def create(self, **fields: Any) -> SkillORM:
        return super().create(**fields)


class UserSkillRepo(GenericBaseRepository[UserSkillORM]):
    model = UserSkillORM

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("user_skill.for_user")
    def for_user(self, user_id: str) -> builtins.list[UserSkillORM]:
        return list(
            self.s.query(UserSkillORM)
            .options(joinedload(UserSkillORM.skill))
            .filter(UserSkillORM.user_id == user_id)
            .order_by(UserSkillORM.id)
            .all()
        )

    @log_op("user_skill.get_for")
    def get_for(self, user_id: str, skill_id: int) -> UserSkillORM | None:
        return (
            self.s.query(UserSkillORM)
            .filter(UserSkillORM.user_id == user_id, UserSkillORM.skill_id == skill_id)
            .one_or_none()
        )

    @log_op("user_skill.upsert")
    def upsert(
        self,
        user_id: str,
        skill_id: int,
        proficiency_level: str,
        years_of_experience: int | None = None,
    ) -> UserSkillORM:
        existing = self.get_for(user_id, skill_id)
        if existing is None:
            return super().create(
                user_id=user_id,
                skill_id=skill_id,
                proficiency_level=proficiency_level,
                years_of_experience=years_of_experience or 0,
            )
        fields: dict[str, Any] = {"proficiency_level": proficiency_level}
        if years_of_experience is not None:
            fields["years_of_experience"] = years_of_experience
        return super().update(existing, **fields)

    @log_op("user_skill.set_level")
    def set_level(self, user_skill: UserSkillORM, proficiency_level: str) -> UserSkillORM:
        return super().update(user_skill, proficiency_level=proficiency_level)
