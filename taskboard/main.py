from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskboard.ai.providers import get_intent_provider
from taskboard.config import Settings, settings
from taskboard.logging_setup import configure_logging
from taskboard.persistence import HttpDocumentStore, JsonFileStorage, PersistenceAdapter, build_adapter
from taskboard.routers.ai import router as ai_router
from taskboard.routers.boards import router as boards_router
from taskboard.routers.session import router as session_router
from taskboard.routers.tasks import router as tasks_router
from taskboard.session import Session
from taskboard.store import BoardStore

logger = logging.getLogger(__name__)


def adapter_factory(cfg: Settings) -> Callable[[Session], PersistenceAdapter]:
  local = JsonFileStorage(cfg.local_storage_path)
  remote = None
  if cfg.remote_base_url:
    remote = HttpDocumentStore(cfg.remote_base_url, token=cfg.remote_token, timeout=cfg.remote_timeout_seconds)

  def factory(session: Session) -> PersistenceAdapter:
    return build_adapter(session, document_store=remote, local_storage=local, collection=cfg.remote_collection)

  return factory


def create_app(cfg: Settings = settings) -> FastAPI:
  @asynccontextmanager
  async def lifespan(app: FastAPI):
    configure_logging(cfg.log_level)
    factory = adapter_factory(cfg)
    session = Session.from_values(cfg.session_mode, cfg.session_user_id)
    store = BoardStore(factory(session), automation_enabled=cfg.automation_enabled)
    await store.establish()
    app.state.adapter_factory = factory
    app.state.session = session
    app.state.store = store
    app.state.intent_provider = get_intent_provider(cfg)
    logger.info("Board engine ready (%s session)", session.mode.value)
    try:
      yield
    finally:
      await store.flush()

  app = FastAPI(title="Task Board Engine", version=cfg.app_version, lifespan=lifespan)
  app.add_middleware(
    CORSMiddleware,
    allow_origins=cfg.cors_origin_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
  )
  app.include_router(session_router)
  app.include_router(boards_router)
  app.include_router(tasks_router)
  app.include_router(ai_router)

  @app.get("/health")
  async def health() -> dict:
    return {"ok": True}

  @app.get("/version")
  async def version() -> dict:
    return {"version": cfg.app_version}

  return app


app = create_app()
