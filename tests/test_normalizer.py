from __future__ import annotations

import pytest

from taskboard.models import DEFAULT_BOARD_NAME, FIRST_BOARD_NAME
from taskboard.normalizer import normalize_document

from conftest import work_board


def test_empty_input_is_seeded() -> None:
  result = normalize_document(None)
  assert result.seeded
  assert result.needs_repair
  assert [b.name for b in result.document.boards] == [FIRST_BOARD_NAME]
  assert result.document.activeBoardId == result.document.boards[0].id


def test_empty_input_without_seeding() -> None:
  result = normalize_document({"boards": []}, seed_if_empty=False)
  assert result.document.boards == []
  assert result.document.activeBoardId is None
  assert not result.needs_repair


def test_board_with_only_a_legacy_title() -> None:
  result = normalize_document({"boards": [{"title": "X"}]})
  board = result.document.boards[0]
  assert board.name == DEFAULT_BOARD_NAME
  assert board.columns == []
  assert board.id
  assert board.createdAt
  assert result.document.activeBoardId == board.id
  assert result.needs_repair


def test_task_status_follows_column_membership() -> None:
  raw = work_board()
  raw["columns"][0]["tasks"][0]["status"] = "done"
  raw["columns"][1]["tasks"][0].pop("status")
  doc = normalize_document({"boards": [raw], "activeBoardId": "b1"}).document
  for column in doc.boards[0].columns:
    for task in column.tasks:
      assert task.status == column.id


def test_field_defaults_are_filled() -> None:
  raw = {
    "id": "b",
    "columns": [
      {"id": "c", "wipLimit": 0, "tasks": [{"id": "t", "priority": "urgent", "tags": "nope", "checklist": [{"text": "x"}]}]},
    ],
  }
  board = normalize_document({"boards": [raw], "activeBoardId": "b"}).document.boards[0]
  column = board.columns[0]
  task = column.tasks[0]
  assert column.title == "Untitled Column"
  assert column.wipLimit is None
  assert task.content == "Untitled Task"
  assert task.priority == "medium"
  assert task.tags == []
  assert task.dependencies == []
  assert task.checklist[0].id
  assert task.checklist[0].completed is False


def test_stale_active_id_falls_back_to_first_board() -> None:
  second = {**work_board(), "id": "b2", "name": "Home"}
  result = normalize_document({"boards": [work_board(), second], "activeBoardId": "gone"})
  assert result.document.activeBoardId == "b1"
  assert result.needs_repair


def test_valid_active_id_is_kept() -> None:
  second = {**work_board(), "id": "b2", "name": "Home"}
  result = normalize_document({"boards": [work_board(), second], "activeBoardId": "b2"})
  assert result.document.activeBoardId == "b2"
  assert not result.needs_repair


def test_normalization_is_idempotent() -> None:
  first = normalize_document({"boards": [work_board(), {"title": "X"}], "activeBoardId": "b1"})
  second = normalize_document(first.document.to_payload())
  assert second.document == first.document
  assert not second.needs_repair
  assert not second.seeded


@pytest.mark.parametrize("raw", ["garbage", 42, {"boards": "x"}, {"boards": [1, "two", None]}])
def test_malformed_input_never_raises(raw: object) -> None:
  result = normalize_document(raw)
  assert result.seeded
  assert len(result.document.boards) == 1
