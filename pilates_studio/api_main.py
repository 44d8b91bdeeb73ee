from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from . import __version__
from .api import api_router, health_router
from .cache import MemoryCache
from .config import Settings, get_settings
from .db import build_engine, build_session_factory, db_session, init_db
from .logging_utils import configure_logging
from .middleware import RequestLoggingMiddleware, register_exception_handlers
from .registry import default_registry
from .seed import seed_base

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables and seed reference data (idempotent)
    state = app.state
    init_db(state.engine)
    if state.settings.seed_on_startup:
        with db_session(state.session_factory) as s:
            seed_base(s, state.settings)
    log.info("%s started (%s, %s)", state.settings.app_name, state.settings.environment, state.engine.dialect.name)
    yield
    if state.owns_engine:
        state.engine.dispose()


def create_app(settings: Settings | None = None, *, engine: Engine | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)

    app.state.settings = settings
    app.state.owns_engine = engine is None
    app.state.engine = engine or build_engine(settings)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.cache = MemoryCache()
    app.state.registry = default_registry()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware, slow_request_ms=settings.slow_request_ms)
    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")
    app.include_router(health_router)
    return app


app = create_app()
