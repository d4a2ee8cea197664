from __future__ import annotations

import json
import logging

import httpx
import pytest

from taskboard.models import new_board
from taskboard.persistence import (
  DocumentStoreError,
  HttpDocumentStore,
  InMemoryDocumentStore,
  JsonFileStorage,
  LocalAdapter,
  MemoryStorage,
  RemoteAdapter,
  build_adapter,
)
from taskboard.persistence.local import ACTIVE_BOARD_KEY, BOARDS_KEY
from taskboard.persistence.remote import normalize_base_url
from taskboard.session import Session


@pytest.mark.anyio
async def test_local_load_returns_none_when_nothing_stored() -> None:
  assert await LocalAdapter(MemoryStorage()).load() is None


@pytest.mark.anyio
async def test_local_save_uses_legacy_keys() -> None:
  storage = MemoryStorage()
  board = new_board("Plans")
  adapter = LocalAdapter(storage)
  await adapter.save([board], board.id)
  assert storage.items[ACTIVE_BOARD_KEY] == board.id
  assert json.loads(storage.items[BOARDS_KEY])[0]["name"] == "Plans"

  await adapter.save([], None)
  assert json.loads(storage.items[BOARDS_KEY]) == []
  assert ACTIVE_BOARD_KEY not in storage.items


@pytest.mark.anyio
async def test_local_load_survives_corrupt_boards(caplog: pytest.LogCaptureFixture) -> None:
  storage = MemoryStorage({BOARDS_KEY: "{not json", ACTIVE_BOARD_KEY: "b1"})
  with caplog.at_level(logging.ERROR, logger="taskboard.persistence.local"):
    raw = await LocalAdapter(storage).load()
  assert raw == {"boards": [], "activeBoardId": "b1"}
  assert "Failed to parse boards" in caplog.text


def test_json_file_storage_round_trip(tmp_path) -> None:
  path = tmp_path / "nested" / "board.json"
  storage = JsonFileStorage(path)
  assert storage.get("k") is None
  storage.set("k", "v")
  storage.set("other", "w")
  assert JsonFileStorage(path).get("k") == "v"
  storage.remove("k")
  assert storage.get("k") is None
  assert json.loads(path.read_text(encoding="utf-8")) == {"other": "w"}


def test_json_file_storage_ignores_invalid_file(tmp_path) -> None:
  path = tmp_path / "board.json"
  path.write_text("[[[", encoding="utf-8")
  assert JsonFileStorage(path).get(BOARDS_KEY) is None


@pytest.mark.anyio
async def test_remote_save_keeps_sibling_fields() -> None:
  documents = InMemoryDocumentStore({"users/u1": {"settings": {"theme": "dark"}, "chat": [1, 2], "boards": [], "activeBoardId": None}})
  adapter = RemoteAdapter(documents, "u1")
  board = new_board("Plans")
  await adapter.save([board], board.id)
  doc = documents.documents["users/u1"]
  assert doc["settings"] == {"theme": "dark"}
  assert doc["chat"] == [1, 2]
  assert doc["activeBoardId"] == board.id
  assert doc["boards"][0]["id"] == board.id


@pytest.mark.anyio
async def test_remote_load_missing_document_is_new_user() -> None:
  adapter = RemoteAdapter(InMemoryDocumentStore(), "u2")
  assert await adapter.load() is None


@pytest.mark.anyio
async def test_remote_save_requires_existing_document() -> None:
  adapter = RemoteAdapter(InMemoryDocumentStore(), "u3")
  with pytest.raises(DocumentStoreError) as exc:
    await adapter.save([], None)
  assert exc.value.status_code == 404


@pytest.mark.anyio
async def test_remote_initialize_merges_into_existing_document() -> None:
  documents = InMemoryDocumentStore({"users/u1": {"profile": {"name": "Sam"}}})
  board = new_board("Plans")
  await RemoteAdapter(documents, "u1").initialize([board], board.id)
  doc = documents.documents["users/u1"]
  assert doc["profile"] == {"name": "Sam"}
  assert doc["activeBoardId"] == board.id


@pytest.mark.anyio
async def test_http_document_store_requests() -> None:
  seen: list[httpx.Request] = []

  def handler(request: httpx.Request) -> httpx.Response:
    seen.append(request)
    if request.method == "GET" and request.url.path == "/documents/users/missing":
      return httpx.Response(404, json={"error": {"message": "not found"}})
    if request.method == "GET":
      return httpx.Response(200, json={"boards": [], "activeBoardId": None, "other": 1})
    if request.method == "PATCH" and request.url.path == "/documents/users/broken":
      return httpx.Response(500, json={"error": {"message": "boom"}})
    return httpx.Response(204)

  store = HttpDocumentStore("docs.example.test/", token="secret", transport=httpx.MockTransport(handler))
  assert await store.get("users/missing") is None
  assert (await store.get("users/u1"))["other"] == 1

  await store.set("users/u1", {"boards": []}, merge=True)
  await store.update("users/u1", {"activeBoardId": "b1"})
  put, patch = seen[2], seen[3]
  assert put.method == "PUT"
  assert put.url.params["merge"] == "true"
  assert patch.method == "PATCH"
  assert json.loads(patch.content) == {"activeBoardId": "b1"}
  assert patch.headers["authorization"] == "Bearer secret"
  assert str(patch.url).startswith("https://docs.example.test/")

  with pytest.raises(DocumentStoreError) as exc:
    await store.update("users/broken", {"boards": []})
  assert exc.value.status_code == 500
  assert exc.value.message == "boom"


def test_normalize_base_url() -> None:
  assert normalize_base_url("example.test/") == "https://example.test"
  assert normalize_base_url("http://localhost:8080") == "http://localhost:8080"
  with pytest.raises(ValueError):
    normalize_base_url("  ")


def test_build_adapter_picks_backend_by_session() -> None:
  local = build_adapter(Session.guest(), local_storage=MemoryStorage())
  assert isinstance(local, LocalAdapter)

  remote = build_adapter(Session.authenticated("u9"), document_store=InMemoryDocumentStore(), collection="people")
  assert isinstance(remote, RemoteAdapter)
  assert remote.path == "people/u9"

  with pytest.raises(ValueError):
    build_adapter(Session.authenticated("u9"))
  with pytest.raises(ValueError):
    build_adapter(Session.guest())


def test_session_requires_user_for_authenticated_mode() -> None:
  with pytest.raises(ValueError):
    Session.from_values("authenticated", None)
  assert Session.from_values("GUEST", "ignored").user_id is None
