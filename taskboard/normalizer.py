"""
Load-time repair of persisted board documents.

Documents written by older releases may lack fields, carry stale task
statuses, or point at a board that no longer exists. ``normalize_document``
turns any such payload into a valid ``BoardDocument`` without raising; it is
pure apart from the ``needs_repair`` flag it hands back to the caller.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from taskboard.models import (
  DEFAULT_BOARD_NAME,
  DEFAULT_COLUMN_TITLE,
  DEFAULT_PRIORITY,
  DEFAULT_TASK_CONTENT,
  PRIORITIES,
  THEME_KEYS,
  Board,
  BoardDocument,
  BoardTheme,
  ChecklistItem,
  Column,
  Task,
  bind_tasks,
  generate_id,
  now_iso,
  seeded_board,
)


@dataclass(frozen=True)
class NormalizedDocument:
  document: BoardDocument
  needs_repair: bool = False
  seeded: bool = False


def _text(value: Any) -> str | None:
  if isinstance(value, bool):
    return None
  if isinstance(value, (int, float)):
    return str(value)
  if isinstance(value, str) and value.strip():
    return value
  return None


def _dicts(value: Any) -> list[dict]:
  if not isinstance(value, list):
    return []
  return [v for v in value if isinstance(v, dict)]


def _strings(value: Any) -> list[str]:
  if not isinstance(value, list):
    return []
  return [v for v in value if isinstance(v, str)]


def _priority(value: Any) -> str:
  p = str(value).strip().lower() if isinstance(value, str) else ""
  return p if p in PRIORITIES else DEFAULT_PRIORITY


def _wip_limit(value: Any) -> int | None:
  if isinstance(value, bool) or not isinstance(value, int):
    return None
  return value if value > 0 else None


def _theme(value: Any) -> BoardTheme:
  if not isinstance(value, dict):
    return BoardTheme()
  return BoardTheme(**{k: value[k] for k in THEME_KEYS if isinstance(value.get(k), str) and value[k].strip()})


def _checklist_item(raw: dict) -> ChecklistItem:
  text = raw.get("text")
  return ChecklistItem(
    id=_text(raw.get("id")) or generate_id("cl"),
    text=text if isinstance(text, str) else "",
    completed=bool(raw.get("completed")),
  )


def _task(raw: dict) -> Task:
  deadline = raw.get("deadline")
  description = raw.get("description")
  return Task(
    id=_text(raw.get("id")) or generate_id("task"),
    content=_text(raw.get("content")) or DEFAULT_TASK_CONTENT,
    priority=_priority(raw.get("priority")),
    deadline=deadline if isinstance(deadline, str) and deadline else None,
    dependencies=_strings(raw.get("dependencies")),
    description=description if isinstance(description, str) else None,
    tags=_strings(raw.get("tags")),
    checklist=[_checklist_item(i) for i in _dicts(raw.get("checklist"))],
    createdAt=_text(raw.get("createdAt")) or now_iso(),
  )


def _column(raw: dict) -> Column:
  column_id = _text(raw.get("id")) or generate_id("col")
  tasks = [_task(t) for t in _dicts(raw.get("tasks"))]
  # Stored statuses are never trusted: membership decides.
  return Column(
    id=column_id,
    title=_text(raw.get("title")) or DEFAULT_COLUMN_TITLE,
    tasks=bind_tasks(column_id, tasks),
    wipLimit=_wip_limit(raw.get("wipLimit")),
  )


def normalize_board(raw: dict) -> Board:
  return Board(
    id=_text(raw.get("id")) or generate_id("board"),
    name=_text(raw.get("name")) or DEFAULT_BOARD_NAME,
    columns=[_column(c) for c in _dicts(raw.get("columns"))],
    theme=_theme(raw.get("theme")),
    createdAt=_text(raw.get("createdAt")) or now_iso(),
  )


def normalize_document(raw: Any, *, seed_if_empty: bool = True) -> NormalizedDocument:
  payload = raw if isinstance(raw, dict) else {}
  boards = [normalize_board(b) for b in _dicts(payload.get("boards"))]
  persisted_active = payload.get("activeBoardId")
  if not isinstance(persisted_active, str) or not persisted_active:
    persisted_active = None

  seeded = False
  if not boards and seed_if_empty:
    boards = [seeded_board()]
    seeded = True

  ids = {b.id for b in boards}
  if persisted_active in ids:
    active = persisted_active
  else:
    active = boards[0].id if boards else None

  return NormalizedDocument(
    document=BoardDocument(boards=boards, activeBoardId=active),
    needs_repair=active != persisted_active,
    seeded=seeded,
  )
