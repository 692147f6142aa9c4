# skillgap/infrastructure/repositories_jobrole.py
from __future__ import annotations

import builtins
from typing import Any

from sqlalchemy.orm import Session, selectinload

from .exceptions import JobRoleNotFoundError
from .logging import log_database_operation as log_op
from .models import JobRoleORM, JobRoleSkillORM
from .repositories_base import BaseRepository as GenericBaseRepository


class JobRoleRepo(GenericBaseRepository[JobRoleORM]):
    model = JobRoleORM

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("job_role.get_with_skills")
    def get_with_skills(self, id_: Any) -> JobRoleORM:
        role = (
            self.s.query(JobRoleORM)
            .options(selectinload(JobRoleORM.skills).joinedload(JobRoleSkillORM.skill))
            .filter(JobRoleORM.id == id_)
            .one_or_none()
        )
        if role is None:
            raise JobRoleNotFoundError(id_)
        return role

    @log_op("job_role.list_all")
    def list_all(self) -> builtins.list[JobRoleORM]:
        return self.list(order_by=[JobRoleORM.title])

    @log_op("job_role.create")
    def create(self, **fields: Any) -> JobRoleORM:
        return super().create(**fields)

    @log_op("job_role.add_skill")
    def add_skill(
        self,
        role: JobRoleORM,
        skill_id: int,
        required_proficiency: str,
        importance: str | None = "required",
    ) -> JobRoleSkillORM:
        entry = JobRoleSkillORM(
            job_role_id=role.id,
            skill_id=skill_id,
            required_proficiency=required_proficiency,
            importance=importance,
        )
        self.s.add(entry)
        self.s.flush()
        return entry
