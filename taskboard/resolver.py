"""
Turns structured actions emitted by the chat assistant into store mutations.

The resolver only ever sees the active board. Tasks are addressed by their
content or id (case-insensitive, exact); columns by title. Every path ends in
an ``Outcome`` with a message the chat UI can show verbatim.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from taskboard.models import DEFAULT_PRIORITY, PRIORITIES, Board, Column, Task, TaskDraft
from taskboard.outcomes import Condition, Outcome
from taskboard.store import BoardStore

logger = logging.getLogger(__name__)

ACTION_TYPES: tuple[str, ...] = ("updateStatus", "updatePriority", "createTask", "deleteTask", "setDeadline", "assignTask")

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class TaskDetails(BaseModel):
  model_config = ConfigDict(extra="ignore")

  content: str = ""
  status: str | None = None
  priority: str | None = None
  deadline: str | None = None
  description: str | None = None


class TaskAction(BaseModel):
  model_config = ConfigDict(extra="ignore")

  type: str
  taskIdentifier: str | None = None
  targetValue: str | None = None
  taskDetails: TaskDetails | None = None


def parse_deadline(value: str | None) -> str | None:
  s = (value or "").strip()
  if not s:
    return None
  try:
    if _DATE_ONLY_RE.fullmatch(s):
      return datetime.fromisoformat(s).date().isoformat()
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
  except ValueError:
    return None
  if dt.tzinfo is None:
    dt = dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc).isoformat()


Located = tuple[Column, Task]
Handler = Callable[[Board, TaskAction], Outcome]


class TaskActionResolver:
  def __init__(self, store: BoardStore, *, first_match_wins: bool = False) -> None:
    self.store = store
    # True reproduces the older behavior of silently taking the first of several matches.
    self.first_match_wins = first_match_wins
    self._handlers: dict[str, Handler] = {
      "updateStatus": self._update_status,
      "updatePriority": self._update_priority,
      "setDeadline": self._set_deadline,
      "createTask": self._create_task,
      "deleteTask": self._delete_task,
      "assignTask": self._assign_task,
    }

  def resolve(self, action: TaskAction | Mapping[str, Any]) -> Outcome:
    parsed = self._parse(action)
    if isinstance(parsed, Outcome):
      return parsed
    handler = self._handlers.get(parsed.type)
    if handler is None:
      return Outcome.failed(
        Condition.UNSUPPORTED_ACTION,
        f'I can\'t perform "{parsed.type}" actions yet.',
        type=parsed.type,
      )
    board = self.store.active_board()
    if board is None:
      return Outcome.failed(Condition.NO_ACTIVE_BOARD, "No active board selected.")
    outcome = handler(board, parsed)
    logger.info("Resolved %s action: %s", parsed.type, outcome.condition.value if outcome.condition else "Applied")
    return outcome

  def _parse(self, action: TaskAction | Mapping[str, Any]) -> TaskAction | Outcome:
    if isinstance(action, TaskAction):
      return action
    if not isinstance(action, Mapping):
      return Outcome.failed(Condition.UNSUPPORTED_ACTION, "I didn't understand that action.")
    try:
      return TaskAction.model_validate(dict(action))
    except ValidationError as e:
      kind = action.get("type")
      if kind in ACTION_TYPES:
        return Outcome.failed(Condition.INVALID_ACTION, "That action is missing required details.", type=kind, errors=e.errors(include_url=False, include_context=False))
      return Outcome.failed(Condition.UNSUPPORTED_ACTION, "I didn't understand that action.", type=str(kind))

  # -------------------- matching --------------------

  def locate(self, board: Board, identifier: str | None) -> Located | Outcome:
    key = (identifier or "").lower()
    if not key:
      return self._not_found(identifier)
    matches: list[Located] = []
    for column in board.columns:
      for task in column.tasks:
        if task.content.lower() == key or task.id.lower() == key:
          matches.append((column, task))
    if not matches:
      return self._not_found(identifier)
    if len(matches) > 1 and not self.first_match_wins:
      candidates = [{"id": t.id, "content": t.content, "columnTitle": c.title} for c, t in matches]
      listing = ", ".join(f'"{t.content}" in {c.title}' for c, t in matches)
      return Outcome.failed(
        Condition.AMBIGUOUS_TASK,
        f'More than one task matches "{identifier}": {listing}. Which one did you mean?',
        identifier=identifier,
        candidates=candidates,
      )
    return matches[0]

  @staticmethod
  def _not_found(identifier: str | None) -> Outcome:
    return Outcome.failed(
      Condition.TASK_NOT_FOUND,
      f'I couldn\'t find the task "{identifier or ""}" on your board. Could you be more specific or check the task name/ID?',
      identifier=identifier or "",
    )

  # -------------------- handlers --------------------

  def _update_status(self, board: Board, action: TaskAction) -> Outcome:
    found = self.locate(board, action.taskIdentifier)
    if isinstance(found, Outcome):
      return found
    column, task = found
    wanted = (action.targetValue or "").lower()
    target = next((c for c in board.columns if c.title.lower() == wanted), None) if wanted else None
    if target is None:
      titles = [c.title for c in board.columns]
      return Outcome.failed(
        Condition.TARGET_COLUMN_NOT_FOUND,
        f'I couldn\'t find the column "{action.targetValue or ""}" on your board. Available columns are: {", ".join(titles)}.',
        targetValue=action.targetValue or "",
        validTitles=titles,
      )
    moved = self.store.move_task(task.id, column.id, target.id, apply_automation=False)
    if not moved.ok:
      return moved
    return Outcome.applied(moved.value, f'Task "{task.content}" has been moved to "{target.title}".')

  def _update_priority(self, board: Board, action: TaskAction) -> Outcome:
    found = self.locate(board, action.taskIdentifier)
    if isinstance(found, Outcome):
      return found
    _, task = found
    priority = (action.targetValue or "").strip().lower()
    if priority not in PRIORITIES:
      return Outcome.failed(
        Condition.INVALID_PRIORITY,
        f"\"{action.targetValue or ''}\" isn't a valid priority. Please use 'high', 'medium', or 'low'.",
        value=action.targetValue or "",
      )
    updated = self.store.update_task(task.id, priority=priority)
    if not updated.ok:
      return updated
    return Outcome.applied(updated.value, f'Priority of "{task.content}" has been set to {priority}.')

  def _set_deadline(self, board: Board, action: TaskAction) -> Outcome:
    found = self.locate(board, action.taskIdentifier)
    if isinstance(found, Outcome):
      return found
    _, task = found
    deadline = parse_deadline(action.targetValue)
    if deadline is None:
      return Outcome.failed(
        Condition.INVALID_DEADLINE,
        f"\"{action.targetValue or ''}\" isn't a date I understand. Please use a format like 2026-10-31.",
        value=action.targetValue or "",
      )
    updated = self.store.update_task(task.id, deadline=deadline)
    if not updated.ok:
      return updated
    return Outcome.applied(updated.value, f'Deadline of "{task.content}" has been set to {deadline}.')

  def _create_task(self, board: Board, action: TaskAction) -> Outcome:
    details = action.taskDetails
    if details is None or not details.content.strip():
      return Outcome.failed(Condition.INVALID_ACTION, "I need a name for the new task.")
    if not board.columns:
      return Outcome.failed(
        Condition.NO_COLUMNS_AVAILABLE,
        "I couldn't create the task because there are no columns on your board.",
      )
    deadline = parse_deadline(details.deadline)
    if details.deadline and deadline is None:
      return Outcome.failed(
        Condition.INVALID_DEADLINE,
        f"\"{details.deadline}\" isn't a date I understand. Please use a format like 2026-10-31.",
        value=details.deadline,
      )
    draft = TaskDraft(
      content=details.content,
      priority=details.priority or DEFAULT_PRIORITY,
      deadline=deadline,
      description=details.description,
    )
    created = self.store.add_task(draft, board.columns[0].id)
    if not created.ok:
      return created
    return Outcome.applied(created.value, f'I\'ve created the task: "{details.content}".')

  def _delete_task(self, board: Board, action: TaskAction) -> Outcome:
    found = self.locate(board, action.taskIdentifier)
    if isinstance(found, Outcome):
      return found
    column, task = found
    deleted = self.store.delete_task(task.id, column.id)
    if not deleted.ok:
      return deleted
    return Outcome.applied(task, f'I\'ve deleted the task "{task.content}".')

  def _assign_task(self, board: Board, action: TaskAction) -> Outcome:
    return Outcome.failed(
      Condition.UNSUPPORTED_ACTION,
      "Assigning tasks to people isn't supported on this board.",
      type=action.type,
    )
