"""
In-memory board state and the only place it is changed.

Every mutation follows the same shape: take the current value of the board it
targets, build a new board value from it, and swap that value into the board
list by id. Persistence runs afterwards as a background task; the in-memory
result is what callers see immediately.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from taskboard.models import (
  DEFAULT_BOARD_NAME,
  DEFAULT_COLUMN_TITLE,
  DEFAULT_TASK_CONTENT,
  PRIORITIES,
  THEME_KEYS,
  Board,
  BoardDocument,
  BoardTheme,
  ChecklistItem,
  Column,
  Task,
  TaskDraft,
  generate_id,
  is_valid_hsl,
  new_board,
  new_column,
  now_iso,
  place_task,
)
from taskboard.normalizer import NormalizedDocument, normalize_document
from taskboard.outcomes import Condition, Outcome
from taskboard.persistence.base import PersistenceAdapter

logger = logging.getLogger(__name__)

Listener = Callable[[BoardDocument], None]
BoardOp = Callable[[Board], tuple[Board | None, Outcome]]

UPDATABLE_TASK_FIELDS = frozenset({"content", "priority", "deadline", "description", "tags", "dependencies", "checklist"})


@dataclass(frozen=True)
class MoveResult:
  task: Task | None
  automated: bool = False


def _complete_checklist(task: Task) -> tuple[Task, bool]:
  if not any(not item.completed for item in task.checklist):
    return task, False
  items = [item if item.completed else item.model_copy(update={"completed": True}) for item in task.checklist]
  return task.model_copy(update={"checklist": items}), True


def _with_column(board: Board, column: Column) -> Board:
  return board.model_copy(update={"columns": [column if c.id == column.id else c for c in board.columns]})


class BoardStore:
  def __init__(self, adapter: PersistenceAdapter, *, automation_enabled: bool = False) -> None:
    self._adapter = adapter
    self._document = BoardDocument()
    self._listeners: list[Listener] = []
    self._inflight: set[asyncio.Task] = set()
    self._unsaved: tuple[PersistenceAdapter, BoardDocument] | None = None
    self.automation_enabled = automation_enabled
    self.last_save_error: Outcome | None = None

  # -------------------- session --------------------

  @property
  def adapter(self) -> PersistenceAdapter:
    return self._adapter

  async def establish(self, adapter: PersistenceAdapter | None = None) -> NormalizedDocument:
    """Load the session's document, replacing whatever is in memory.

    Passing ``adapter`` switches backends (e.g. guest -> authenticated). Saves
    still in flight for the previous backend are left to finish on their own.
    """
    if adapter is not None:
      self._adapter = adapter
    adapter = self._adapter
    load_failed = False
    try:
      raw = await adapter.load()
    except Exception:
      logger.exception("Loading boards failed; starting from a local default document")
      raw = None
      load_failed = True

    normalized = normalize_document(raw)
    self._document = normalized.document
    self._unsaved = None
    logger.info(
      "Session established with %d board(s), active=%s",
      len(normalized.document.boards),
      normalized.document.activeBoardId,
    )

    # Stored data we could not read is never overwritten.
    if load_failed:
      logger.warning("Skipping the initial save for this session")
    elif raw is None:
      try:
        await adapter.initialize(list(self._document.boards), self._document.activeBoardId)
      except Exception as e:
        self._record_save_failure(e)
    elif normalized.needs_repair:
      logger.info("Stored active board id was stale; scheduling a corrective save")
      self._persist(self._document)

    self._notify(self._document)
    return normalized

  # -------------------- queries --------------------

  @property
  def boards(self) -> list[Board]:
    return list(self._document.boards)

  @property
  def active_board_id(self) -> str | None:
    return self._document.activeBoardId

  def document(self) -> BoardDocument:
    return self._document

  def active_board(self) -> Board | None:
    return self._document.active_board()

  def get_board(self, board_id: str) -> Board | None:
    for b in self._document.boards:
      if b.id == board_id:
        return b
    return None

  def find_column(self, column_id: str) -> Column | None:
    board = self.active_board()
    return board.find_column(column_id) if board else None

  def find_task(self, task_id: str) -> tuple[Column, Task] | None:
    board = self.active_board()
    if board is None:
      return None
    for column in board.columns:
      task = column.find_task(task_id)
      if task is not None:
        return column, task
    return None

  def get_task(self, task_id: str) -> Task | None:
    found = self.find_task(task_id)
    return found[1] if found else None

  def all_tasks(self) -> list[Task]:
    board = self.active_board()
    return board.all_tasks() if board else []

  # -------------------- change notification --------------------

  def subscribe(self, listener: Listener) -> Callable[[], None]:
    self._listeners.append(listener)

    def _unsubscribe() -> None:
      if listener in self._listeners:
        self._listeners.remove(listener)

    return _unsubscribe

  def _notify(self, document: BoardDocument) -> None:
    for listener in list(self._listeners):
      try:
        listener(document)
      except Exception:
        logger.exception("Board change listener failed")

  # -------------------- persistence --------------------

  def _commit(self, document: BoardDocument) -> None:
    self._document = document
    self._persist(document)
    self._notify(document)

  def _persist(self, document: BoardDocument) -> None:
    adapter = self._adapter
    try:
      loop = asyncio.get_running_loop()
    except RuntimeError:
      # No loop to run the save on; flush() writes the latest snapshot.
      self._unsaved = (adapter, document)
      return
    self._unsaved = None
    task = loop.create_task(self._save(adapter, document))
    self._inflight.add(task)
    task.add_done_callback(self._inflight.discard)

  async def _save(self, adapter: PersistenceAdapter, document: BoardDocument) -> None:
    try:
      await adapter.save(list(document.boards), document.activeBoardId)
    except Exception as e:
      self._record_save_failure(e)
      return
    self.last_save_error = None

  def _record_save_failure(self, exc: Exception) -> None:
    self.last_save_error = Outcome.failed(
      Condition.PERSISTENCE_WRITE_FAILED,
      "Your changes are kept for this session but could not be saved.",
      error=str(exc),
    )
    logger.error("%s: %s", Condition.PERSISTENCE_WRITE_FAILED.value, exc, exc_info=exc)

  async def flush(self) -> None:
    """Wait for every pending save, including one deferred for lack of a loop."""
    if self._unsaved is not None:
      adapter, document = self._unsaved
      self._unsaved = None
      await self._save(adapter, document)
    while True:
      pending = [t for t in self._inflight if not t.done()]
      if not pending:
        return
      await asyncio.gather(*pending)

  # -------------------- board operations --------------------

  def _replace_board(self, updated: Board) -> None:
    boards = self._document.boards
    if not any(b.id == updated.id for b in boards):
      logger.warning("Board %s disappeared before its update landed; dropping the update", updated.id)
      return
    new_boards = [updated if b.id == updated.id else b for b in boards]
    self._commit(self._document.model_copy(update={"boards": new_boards}))

  def set_active_board(self, board_id: str | None) -> Outcome[Board]:
    if board_id is not None and self.get_board(board_id) is None:
      return Outcome.failed(Condition.BOARD_NOT_FOUND, "That board no longer exists.", boardId=board_id)
    if board_id != self._document.activeBoardId:
      self._commit(self._document.model_copy(update={"activeBoardId": board_id}))
    return Outcome.applied(self.active_board())

  def add_board(self, name: str) -> Outcome[Board]:
    board = new_board((name or "").strip() or DEFAULT_BOARD_NAME)
    self._commit(BoardDocument(boards=[*self._document.boards, board], activeBoardId=board.id))
    logger.debug("Board %s created", board.id)
    return Outcome.applied(board, f'Board "{board.name}" has been created.')

  def delete_board(self, board_id: str) -> Outcome[None]:
    if self.get_board(board_id) is None:
      return Outcome.failed(Condition.BOARD_NOT_FOUND, "That board no longer exists.", boardId=board_id)
    remaining = [b for b in self._document.boards if b.id != board_id]
    active = self._document.activeBoardId
    if active == board_id:
      active = remaining[0].id if remaining else None
    self._commit(BoardDocument(boards=remaining, activeBoardId=active))
    return Outcome.applied(message="The board has been deleted.")

  def rename_board(self, board_id: str, name: str) -> Outcome[Board]:
    board = self.get_board(board_id)
    if board is None:
      return Outcome.failed(Condition.BOARD_NOT_FOUND, "That board no longer exists.", boardId=board_id)
    name = (name or "").strip()
    if not name:
      return Outcome.failed(Condition.INVALID_ACTION, "Board name is required.")
    updated = board.model_copy(update={"name": name})
    self._replace_board(updated)
    return Outcome.applied(updated, "Board name has been updated.")

  def update_theme(self, board_id: str, theme: Mapping[str, Any] | BoardTheme) -> Outcome[Board]:
    board = self.get_board(board_id)
    if board is None:
      return Outcome.failed(Condition.BOARD_NOT_FOUND, "That board no longer exists.", boardId=board_id)
    changes = theme.model_dump() if isinstance(theme, BoardTheme) else dict(theme)
    for key, value in changes.items():
      if key not in THEME_KEYS:
        continue
      if value is not None and str(value).strip() and not is_valid_hsl(str(value)):
        return Outcome.failed(
          Condition.INVALID_THEME,
          f"Invalid HSL value for {key}: {value}. Use a format like 'hsl(174, 38%, 60%)'.",
          key=key,
          value=value,
        )
    updated = board.model_copy(update={"theme": board.theme.merged(changes)})
    self._replace_board(updated)
    return Outcome.applied(updated, "Board appearance has been customized.")

  # -------------------- active board operations --------------------

  def _on_active_board(self, op: BoardOp) -> Outcome:
    board = self.active_board()
    if board is None:
      return Outcome.failed(Condition.NO_ACTIVE_BOARD, "No active board. Select or create a board first.")
    updated, outcome = op(board)
    if updated is not None and outcome.ok:
      self._replace_board(updated)
    return outcome

  def _on_task(
    self,
    column_id: str,
    task_id: str,
    edit: Callable[[Task], tuple[Task | None, Outcome]],
  ) -> Outcome:
    def op(board: Board) -> tuple[Board | None, Outcome]:
      column = board.find_column(column_id)
      if column is None:
        return None, Outcome.failed(Condition.COLUMN_NOT_FOUND, "That column no longer exists.", columnId=column_id)
      task = column.find_task(task_id)
      if task is None:
        return None, Outcome.failed(Condition.TASK_NOT_FOUND, "That task no longer exists.", identifier=task_id)
      new_task, outcome = edit(task)
      if new_task is None:
        return None, outcome
      tasks = [new_task if t.id == task_id else t for t in column.tasks]
      return _with_column(board, column.model_copy(update={"tasks": tasks})), outcome

    return self._on_active_board(op)

  def add_task(self, data: Mapping[str, Any] | TaskDraft, column_id: str | None = None) -> Outcome[Task]:
    try:
      draft = data if isinstance(data, TaskDraft) else TaskDraft.model_validate(dict(data))
    except ValidationError as e:
      return Outcome.failed(Condition.INVALID_ACTION, "Task details are incomplete.", errors=e.errors(include_url=False, include_context=False))
    priority = (draft.priority or "").strip().lower()
    if priority not in PRIORITIES:
      return Outcome.failed(Condition.INVALID_PRIORITY, f'"{draft.priority}" is not a valid priority.', value=draft.priority)

    def op(board: Board) -> tuple[Board | None, Outcome]:
      if column_id is None:
        if not board.columns:
          return None, Outcome.failed(Condition.NO_COLUMNS_AVAILABLE, "No columns available in this board.")
        target = board.columns[0]
      else:
        target = board.find_column(column_id)
        if target is None:
          return None, Outcome.failed(Condition.COLUMN_NOT_FOUND, "That column no longer exists.", columnId=column_id)
      task = Task(
        id=generate_id("task"),
        content=draft.content.strip() or DEFAULT_TASK_CONTENT,
        priority=priority,
        deadline=draft.deadline or None,
        description=draft.description or None,
        tags=list(draft.tags),
        dependencies=list(draft.dependencies),
        checklist=[ChecklistItem(id=generate_id("cl"), text=text) for text in draft.checklist],
        createdAt=now_iso(),
      )
      column = place_task(target, task)
      return _with_column(board, column), Outcome.applied(column.tasks[0], f'Task "{task.content}" added.')

    return self._on_active_board(op)

  def move_task(
    self,
    task_id: str,
    from_column_id: str,
    to_column_id: str,
    apply_automation: bool | None = None,
  ) -> Outcome[MoveResult]:
    automate = self.automation_enabled if apply_automation is None else apply_automation

    def op(board: Board) -> tuple[Board | None, Outcome]:
      source = board.find_column(from_column_id)
      target = board.find_column(to_column_id)
      if source is None or target is None:
        missing = from_column_id if source is None else to_column_id
        return None, Outcome.failed(Condition.COLUMN_NOT_FOUND, "That column no longer exists.", columnId=missing)
      task = source.find_task(task_id)
      if task is None:
        return None, Outcome.failed(Condition.TASK_NOT_FOUND, "That task is not in the source column.", identifier=task_id)

      automated = False
      if automate and target.title.lower() == "done" and task.checklist:
        task, automated = _complete_checklist(task)

      columns: list[Column] = []
      moved: Task | None = None
      for column in board.columns:
        if column.id == source.id:
          column = column.model_copy(update={"tasks": [t for t in column.tasks if t.id != task_id]})
        if column.id == target.id:
          column = place_task(column, task)
          moved = column.tasks[0]
        columns.append(column)

      message = f'Task "{task.content}" moved to "{target.title}".'
      if automated:
        message += " Checklist items marked complete."
      return board.model_copy(update={"columns": columns}), Outcome.applied(MoveResult(task=moved, automated=automated), message)

    return self._on_active_board(op)

  def delete_task(self, task_id: str, column_id: str) -> Outcome[None]:
    def op(board: Board) -> tuple[Board | None, Outcome]:
      column = board.find_column(column_id)
      if column is None:
        return None, Outcome.failed(Condition.COLUMN_NOT_FOUND, "That column no longer exists.", columnId=column_id)
      task = column.find_task(task_id)
      if task is None:
        return None, Outcome.failed(Condition.TASK_NOT_FOUND, "That task no longer exists.", identifier=task_id)
      column = column.model_copy(update={"tasks": [t for t in column.tasks if t.id != task_id]})
      return _with_column(board, column), Outcome.applied(message=f'Task "{task.content}" deleted.')

    return self._on_active_board(op)

  def update_task(self, task_id: str, **changes: Any) -> Outcome[Task]:
    rejected = sorted(set(changes) - UPDATABLE_TASK_FIELDS)
    if rejected:
      return Outcome.failed(Condition.INVALID_ACTION, f"These task fields cannot be changed: {', '.join(rejected)}.", fields=rejected)
    if "priority" in changes:
      p = str(changes["priority"] or "").strip().lower()
      if p not in PRIORITIES:
        return Outcome.failed(Condition.INVALID_PRIORITY, f'"{changes["priority"]}" is not a valid priority.', value=changes["priority"])
      changes["priority"] = p
    if "content" in changes:
      changes["content"] = str(changes["content"] or "").strip() or DEFAULT_TASK_CONTENT
    for key in ("deadline", "description"):
      if key in changes and not changes[key]:
        changes[key] = None

    def op(board: Board) -> tuple[Board | None, Outcome]:
      for column in board.columns:
        task = column.find_task(task_id)
        if task is None:
          continue
        try:
          updated = Task.model_validate({**task.model_dump(), **changes, "status": column.id})
        except ValidationError as e:
          return None, Outcome.failed(Condition.INVALID_ACTION, "Task update is not valid.", errors=e.errors(include_url=False, include_context=False))
        tasks = [updated if t.id == task_id else t for t in column.tasks]
        return _with_column(board, column.model_copy(update={"tasks": tasks})), Outcome.applied(updated, "Task updated.")
      return None, Outcome.failed(Condition.TASK_NOT_FOUND, "That task no longer exists.", identifier=task_id)

    return self._on_active_board(op)

  # -------------------- column operations --------------------

  def add_column(self, title: str) -> Outcome[Column]:
    def op(board: Board) -> tuple[Board | None, Outcome]:
      column = new_column((title or "").strip() or DEFAULT_COLUMN_TITLE)
      updated = board.model_copy(update={"columns": [*board.columns, column]})
      return updated, Outcome.applied(column, f'Column "{column.title}" created.')

    return self._on_active_board(op)

  def rename_column(self, column_id: str, title: str) -> Outcome[Column]:
    def op(board: Board) -> tuple[Board | None, Outcome]:
      column = board.find_column(column_id)
      if column is None:
        return None, Outcome.failed(Condition.COLUMN_NOT_FOUND, "That column no longer exists.", columnId=column_id)
      column = column.model_copy(update={"title": (title or "").strip() or DEFAULT_COLUMN_TITLE})
      return _with_column(board, column), Outcome.applied(column, "Column title changed.")

    return self._on_active_board(op)

  def delete_column(self, column_id: str) -> Outcome[None]:
    """Remove a column together with its tasks. Callers confirm with the user first."""

    def op(board: Board) -> tuple[Board | None, Outcome]:
      if board.find_column(column_id) is None:
        return None, Outcome.failed(Condition.COLUMN_NOT_FOUND, "That column no longer exists.", columnId=column_id)
      columns = [c for c in board.columns if c.id != column_id]
      return board.model_copy(update={"columns": columns}), Outcome.applied(message="Column and its tasks have been deleted.")

    return self._on_active_board(op)

  def set_column_wip_limit(self, column_id: str, limit: int | None) -> Outcome[Column]:
    def op(board: Board) -> tuple[Board | None, Outcome]:
      column = board.find_column(column_id)
      if column is None:
        return None, Outcome.failed(Condition.COLUMN_NOT_FOUND, "That column no longer exists.", columnId=column_id)
      column = column.model_copy(update={"wipLimit": limit if limit and limit > 0 else None})
      return _with_column(board, column), Outcome.applied(column, "WIP limit updated.")

    return self._on_active_board(op)

  # -------------------- checklist operations --------------------

  def add_checklist_item(self, task_id: str, column_id: str, text: str) -> Outcome[ChecklistItem]:
    def edit(task: Task) -> tuple[Task | None, Outcome]:
      item = ChecklistItem(id=generate_id("cl"), text=text or "", completed=False)
      return task.model_copy(update={"checklist": [*task.checklist, item]}), Outcome.applied(item)

    return self._on_task(column_id, task_id, edit)

  def _on_checklist_item(
    self,
    task_id: str,
    column_id: str,
    item_id: str,
    change: Callable[[ChecklistItem], ChecklistItem | None],
  ) -> Outcome:
    def edit(task: Task) -> tuple[Task | None, Outcome]:
      if not any(i.id == item_id for i in task.checklist):
        return None, Outcome.failed(Condition.CHECKLIST_ITEM_NOT_FOUND, "That checklist item no longer exists.", itemId=item_id)
      items: list[ChecklistItem] = []
      result: ChecklistItem | None = None
      for item in task.checklist:
        if item.id == item_id:
          item = change(item)
          result = item
        if item is not None:
          items.append(item)
      return task.model_copy(update={"checklist": items}), Outcome.applied(result)

    return self._on_task(column_id, task_id, edit)

  def toggle_checklist_item(self, task_id: str, column_id: str, item_id: str) -> Outcome[ChecklistItem]:
    return self._on_checklist_item(task_id, column_id, item_id, lambda i: i.model_copy(update={"completed": not i.completed}))

  def rename_checklist_item(self, task_id: str, column_id: str, item_id: str, text: str) -> Outcome[ChecklistItem]:
    return self._on_checklist_item(task_id, column_id, item_id, lambda i: i.model_copy(update={"text": text or ""}))

  def delete_checklist_item(self, task_id: str, column_id: str, item_id: str) -> Outcome[None]:
    return self._on_checklist_item(task_id, column_id, item_id, lambda _: None)
