from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skillgap.application.sessions import SessionRegistry
from skillgap.infrastructure.config import get_settings
from skillgap.infrastructure.logging import get_logger
from skillgap.web.routes import api

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting skill readiness API", extra={"settings": get_settings().get_environment_info()})
    yield
    registry = getattr(app.state, "session_registry", None)
    if registry is not None:
        logger.info(f"Shutting down with {len(registry)} assessment sessions open")
        registry.clear()


def create_application() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app.title,
        version=settings.app.version,
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session_registry = SessionRegistry()
    app.include_router(api.router)

    return app


app = create_application()
