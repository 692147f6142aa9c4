from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session, sessionmaker

from skillgap.application.sessions import SessionRegistry
from skillgap.infrastructure.collaborators import (
    CodeChecker,
    HttpCodeChecker,
    HttpQuestionGenerator,
    QuestionGenerator,
)
from skillgap.infrastructure.config import DatabaseConfig, get_settings
from skillgap.infrastructure.db import create_database_engine, create_session_factory
from skillgap.infrastructure.uow import UnitOfWork


def get_db_config(request: Request) -> DatabaseConfig:
    config = getattr(request.app.state, "db_config", None)
    if config is None:
        config = get_settings().database
        request.app.state.db_config = config
    return config


def get_session_factory(request: Request) -> sessionmaker[Session]:
    cached_factory = getattr(request.app.state, "session_factory", None)
    if cached_factory is not None:
        return cached_factory

    engine = create_database_engine(get_db_config(request))
    session_factory = create_session_factory(engine)
    request.app.state.session_factory = session_factory
    return session_factory


def get_db_session(request: Request) -> Generator[Session, None, None]:
    session_factory = get_session_factory(request)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def get_unit_of_work(request: Request) -> UnitOfWork:
    """Result recorders outlive the request, so they get their own transactions."""
    return UnitOfWork(get_session_factory(request))


def get_session_registry(request: Request) -> SessionRegistry:
    registry = getattr(request.app.state, "session_registry", None)
    if registry is None:
        registry = SessionRegistry()
        request.app.state.session_registry = registry
    return registry


def get_question_generator(request: Request) -> QuestionGenerator:
    generator = getattr(request.app.state, "question_generator", None)
    if generator is None:
        generator = HttpQuestionGenerator()
        request.app.state.question_generator = generator
    return generator


def get_code_checker(request: Request) -> CodeChecker:
    checker = getattr(request.app.state, "code_checker", None)
    if checker is None:
        checker = HttpCodeChecker()
        request.app.state.code_checker = checker
    return checker
