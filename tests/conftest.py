from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

from taskboard.ai.providers import LocalIntentProvider
from taskboard.main import create_app
from taskboard.persistence import InMemoryDocumentStore, LocalAdapter, MemoryStorage, build_adapter
from taskboard.persistence.local import ACTIVE_BOARD_KEY, BOARDS_KEY
from taskboard.session import Session
from taskboard.store import BoardStore

CREATED = "2026-01-05T09:00:00+00:00"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


def work_board() -> dict[str, Any]:
  return {
    "id": "b1",
    "name": "Work",
    "createdAt": CREATED,
    "columns": [
      {
        "id": "todo",
        "title": "To Do",
        "wipLimit": 5,
        "tasks": [
          {
            "id": "t1",
            "content": "Write report",
            "status": "todo",
            "priority": "high",
            "createdAt": CREATED,
            "checklist": [
              {"id": "c1", "text": "Outline", "completed": True},
              {"id": "c2", "text": "Draft", "completed": False},
            ],
          },
          {"id": "t2", "content": "Email team", "status": "todo", "priority": "low", "createdAt": CREATED},
        ],
      },
      {
        "id": "doing",
        "title": "In Progress",
        "wipLimit": 3,
        "tasks": [{"id": "t3", "content": "Fix login", "status": "doing", "createdAt": CREATED}],
      },
      {"id": "done", "title": "Done", "tasks": []},
    ],
  }


def stored(boards: list[dict[str, Any]], active: str | None) -> MemoryStorage:
  items = {BOARDS_KEY: json.dumps(boards)}
  if active is not None:
    items[ACTIVE_BOARD_KEY] = active
  return MemoryStorage(items)


@pytest.fixture
def storage() -> MemoryStorage:
  return stored([work_board()], "b1")


@pytest.fixture
async def store(storage: MemoryStorage) -> BoardStore:
  s = BoardStore(LocalAdapter(storage))
  await s.establish()
  return s


@pytest.fixture
def remote_documents() -> InMemoryDocumentStore:
  return InMemoryDocumentStore()


@pytest.fixture
async def client(store: BoardStore, remote_documents: InMemoryDocumentStore) -> AsyncClient:
  app = create_app()
  app.state.store = store
  app.state.session = Session.guest()
  app.state.adapter_factory = lambda session: build_adapter(
    session,
    document_store=remote_documents,
    local_storage=MemoryStorage(),
  )
  app.state.intent_provider = LocalIntentProvider()
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://test") as c:
    yield c
