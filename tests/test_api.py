from __future__ import annotations

import pytest
from fastapi import HTTPException
from httpx import AsyncClient

from taskboard.config import settings
from taskboard.deps import raise_for_outcome
from taskboard.outcomes import Condition, Outcome
from taskboard.persistence import InMemoryDocumentStore


@pytest.mark.anyio
async def test_health_and_version(client: AsyncClient) -> None:
  r = await client.get("/health")
  assert r.status_code == 200
  assert r.json() == {"ok": True}
  r = await client.get("/version")
  assert r.json()["version"] == settings.app_version


@pytest.mark.anyio
async def test_list_boards(client: AsyncClient) -> None:
  r = await client.get("/boards")
  assert r.status_code == 200, r.text
  data = r.json()
  assert data["activeBoardId"] == "b1"
  assert [c["title"] for c in data["boards"][0]["columns"]] == ["To Do", "In Progress", "Done"]


@pytest.mark.anyio
async def test_create_and_move_task(client: AsyncClient) -> None:
  r = await client.post("/tasks", json={"content": "Plan sprint", "priority": "high"})
  assert r.status_code == 200, r.text
  task = r.json()["value"]
  assert task["status"] == "todo"

  r = await client.post(f"/tasks/{task['id']}/move", json={"fromColumnId": "todo", "toColumnId": "done"})
  assert r.status_code == 200, r.text
  assert r.json()["task"]["status"] == "done"
  assert r.json()["automated"] is False

  r = await client.post(f"/tasks/{task['id']}/move", json={"fromColumnId": "done", "toColumnId": "archive"})
  assert r.status_code == 404
  assert r.json()["detail"]["condition"] == "ColumnNotFound"


@pytest.mark.anyio
async def test_invalid_priority_and_theme_are_bad_requests(client: AsyncClient) -> None:
  r = await client.post("/tasks", json={"content": "x", "priority": "urgent"})
  assert r.status_code == 400
  assert r.json()["detail"]["condition"] == "InvalidPriority"

  r = await client.put("/boards/b1/theme", json={"primaryColor": "red"})
  assert r.status_code == 400
  assert r.json()["detail"]["condition"] == "InvalidTheme"

  r = await client.put("/boards/b1/theme", json={"primaryColor": "hsl(174, 38%, 60%)"})
  assert r.status_code == 200, r.text
  assert r.json()["value"]["theme"] == {"primaryColor": "hsl(174, 38%, 60%)"}


@pytest.mark.anyio
async def test_board_routes(client: AsyncClient) -> None:
  r = await client.post("/boards", json={"name": "Home"})
  new_id = r.json()["value"]["id"]
  assert (await client.get("/boards")).json()["activeBoardId"] == new_id

  r = await client.post("/boards/b1/activate")
  assert r.status_code == 200
  r = await client.patch("/boards/b1", json={"name": "Office"})
  assert r.json()["value"]["name"] == "Office"
  r = await client.delete(f"/boards/{new_id}")
  assert r.json()["value"]["activeBoardId"] == "b1"
  r = await client.post(f"/boards/{new_id}/activate")
  assert r.status_code == 404
  assert r.json()["detail"]["condition"] == "BoardNotFound"


@pytest.mark.anyio
async def test_column_routes(client: AsyncClient) -> None:
  r = await client.post("/columns", json={"title": "Review"})
  column_id = r.json()["value"]["id"]
  r = await client.patch(f"/columns/{column_id}", json={"title": "QA", "wipLimit": 2})
  assert r.json()["value"]["title"] == "QA"
  assert r.json()["value"]["wipLimit"] == 2
  r = await client.delete("/columns/todo")
  assert r.status_code == 200
  titles = [c["title"] for c in (await client.get("/boards")).json()["boards"][0]["columns"]]
  assert titles == ["In Progress", "Done", "QA"]


@pytest.mark.anyio
async def test_task_and_checklist_routes(client: AsyncClient) -> None:
  r = await client.patch("/tasks/t2", json={"description": "Weekly update", "priority": "medium"})
  assert r.json()["value"]["description"] == "Weekly update"

  r = await client.post("/tasks/t2/checklist", json={"text": "Draft"})
  item_id = r.json()["value"]["id"]
  r = await client.post(f"/tasks/t2/checklist/{item_id}/toggle")
  assert r.json()["value"]["completed"] is True
  r = await client.patch(f"/tasks/t2/checklist/{item_id}", json={"text": "Send"})
  assert r.json()["value"]["text"] == "Send"
  r = await client.delete(f"/tasks/t2/checklist/{item_id}")
  assert r.status_code == 200
  r = await client.delete("/columns/todo/tasks/t2")
  assert r.status_code == 200
  r = await client.post("/tasks/t2/checklist", json={"text": "late"})
  assert r.status_code == 404


@pytest.mark.anyio
async def test_ai_action_endpoint(client: AsyncClient) -> None:
  r = await client.post("/ai/actions", json={"action": {"type": "updateStatus", "taskIdentifier": "Fix login", "targetValue": "Done"}})
  assert r.status_code == 200, r.text
  assert r.json()["value"]["status"] == "done"

  r = await client.post("/ai/actions", json={"action": {"type": "archiveTask"}})
  assert r.status_code == 422
  assert r.json()["detail"]["condition"] == "UnsupportedAction"


@pytest.mark.anyio
async def test_ai_chat_endpoint(client: AsyncClient) -> None:
  r = await client.post("/ai/chat", json={"query": "move Email team to In Progress"})
  assert r.status_code == 200, r.text
  body = r.json()
  assert body["applied"] is True
  assert body["notice"] == 'Task "Email team" has been moved to "In Progress".'

  r = await client.post("/ai/chat", json={"query": "move Nope to Done"})
  body = r.json()
  assert body["applied"] is False
  assert body["condition"] == "TaskNotFound"


@pytest.mark.anyio
async def test_switch_session(client: AsyncClient, remote_documents: InMemoryDocumentStore) -> None:
  r = await client.post("/session", json={"mode": "authenticated"})
  assert r.status_code == 400

  r = await client.post("/session", json={"mode": "authenticated", "userId": "u1"})
  assert r.status_code == 200, r.text
  body = r.json()
  assert body["mode"] == "authenticated"
  assert body["seeded"] is True
  assert "users/u1" in remote_documents.documents

  r = await client.get("/session")
  assert r.json()["userId"] == "u1"
  assert r.json()["boardCount"] == 1


def test_outcome_to_http_error_mapping() -> None:
  with pytest.raises(HTTPException) as exc:
    raise_for_outcome(Outcome.failed(Condition.TASK_NOT_FOUND, "gone", identifier="t9"))
  assert exc.value.status_code == 404
  assert exc.value.detail == {"condition": "TaskNotFound", "message": "gone", "identifier": "t9"}

  with pytest.raises(ValueError):
    raise_for_outcome(Outcome.applied(None, "fine"))


@pytest.mark.anyio
async def test_blank_task_content_gets_default_name(client: AsyncClient) -> None:
  r = await client.patch("/tasks/t3", json={"content": "  "})
  assert r.status_code == 200, r.text
  assert r.json()["value"]["content"] == "Untitled Task"
