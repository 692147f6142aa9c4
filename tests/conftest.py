from __future__ import annotations

import os

# Quiet logging; must be set before any skillgap module is imported
os.environ.setdefault("ENVIRONMENT", "test")

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from skillgap.infrastructure.models import AssessmentORM, Base, JobRoleORM, SkillORM
from skillgap.infrastructure.uow import UnitOfWork
from skillgap.utils.seed import load_seed_file, seed_from_json

SAMPLE_CATALOG = Path(__file__).resolve().parent.parent / "data" / "sample_catalog.json"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def SessionLocal(engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, future=True, expire_on_commit=False)


@pytest.fixture
def uow(SessionLocal) -> UnitOfWork:
    return UnitOfWork(SessionLocal)


@pytest.fixture
def catalog(SessionLocal) -> dict[str, int]:
    """Seed the sample catalog; returns ids keyed by skill name, role title and assessment title."""
    with SessionLocal() as s:
        seed_from_json(s, load_seed_file(SAMPLE_CATALOG))
        s.commit()
        ids = {sk.name: sk.id for sk in s.query(SkillORM).all()}
        ids.update({r.title: r.id for r in s.query(JobRoleORM).all()})
        ids.update({a.title: a.id for a in s.query(AssessmentORM).all()})
    return ids
