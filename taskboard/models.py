from __future__ import annotations

import re
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

Priority = Literal["high", "medium", "low"]
PRIORITIES: tuple[str, ...] = ("high", "medium", "low")
DEFAULT_PRIORITY: Priority = "medium"

THEME_KEYS: tuple[str, ...] = ("primaryColor", "backgroundColor", "columnHeaderColor", "cardColor")

DEFAULT_BOARD_NAME = "Untitled Board"
DEFAULT_COLUMN_TITLE = "Untitled Column"
DEFAULT_TASK_CONTENT = "Untitled Task"
FIRST_BOARD_NAME = "My First Board"

_ID_ALPHABET = string.ascii_lowercase + string.digits
_HSL_RE = re.compile(r"^hsl\(\s*\d{1,3}(\.\d+)?\s*,\s*\d{1,3}(\.\d+)?%\s*,\s*\d{1,3}(\.\d+)?%\s*\)$", re.IGNORECASE)


def generate_id(prefix: str = "id") -> str:
  # Timestamp + random suffix; unique enough for a single user's document.
  millis = int(time.time() * 1000)
  suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
  return f"{prefix}-{millis}-{suffix}"


def now_iso() -> str:
  return datetime.now(timezone.utc).isoformat()


def is_valid_hsl(value: str) -> bool:
  return bool(_HSL_RE.fullmatch((value or "").strip()))


class _Frozen(BaseModel):
  model_config = ConfigDict(frozen=True, extra="ignore")


class ChecklistItem(_Frozen):
  id: str
  text: str = ""
  completed: bool = False


class Task(_Frozen):
  id: str
  content: str
  status: str = ""
  priority: Priority = DEFAULT_PRIORITY
  deadline: str | None = None
  dependencies: list[str] = []
  description: str | None = None
  tags: list[str] = []
  checklist: list[ChecklistItem] = []
  createdAt: str


class Column(_Frozen):
  id: str
  title: str
  tasks: list[Task] = []
  wipLimit: int | None = None

  def find_task(self, task_id: str) -> Task | None:
    for t in self.tasks:
      if t.id == task_id:
        return t
    return None


class BoardTheme(_Frozen):
  """Sparse color overrides. A missing key means "use the app default"."""

  primaryColor: str | None = None
  backgroundColor: str | None = None
  columnHeaderColor: str | None = None
  cardColor: str | None = None

  def merged(self, update: dict[str, Any]) -> BoardTheme:
    data = self.model_dump(exclude_none=True)
    for key, value in update.items():
      if key not in THEME_KEYS:
        continue
      if value is None or not str(value).strip():
        data.pop(key, None)
      else:
        data[key] = str(value).strip()
    return BoardTheme(**data)


class Board(_Frozen):
  id: str
  name: str
  columns: list[Column] = []
  theme: BoardTheme = BoardTheme()
  createdAt: str

  def find_column(self, column_id: str) -> Column | None:
    for c in self.columns:
      if c.id == column_id:
        return c
    return None

  def all_tasks(self) -> list[Task]:
    return [t for c in self.columns for t in c.tasks]

  def to_payload(self) -> dict[str, Any]:
    return self.model_dump(mode="json", exclude_none=True)


class BoardDocument(_Frozen):
  boards: list[Board] = []
  activeBoardId: str | None = None

  def active_board(self) -> Board | None:
    for b in self.boards:
      if b.id == self.activeBoardId:
        return b
    return None

  def to_payload(self) -> dict[str, Any]:
    return {"boards": [b.to_payload() for b in self.boards], "activeBoardId": self.activeBoardId}


class TaskDraft(BaseModel):
  """Caller-supplied fields for a new task; the store fills in the rest."""

  model_config = ConfigDict(extra="ignore")

  content: str
  priority: str = DEFAULT_PRIORITY
  deadline: str | None = None
  description: str | None = None
  tags: list[str] = []
  dependencies: list[str] = []
  checklist: list[str] = []


def bind_tasks(column_id: str, tasks: list[Task]) -> list[Task]:
  """Return ``tasks`` with each ``status`` pointing at ``column_id``."""
  return [t if t.status == column_id else t.model_copy(update={"status": column_id}) for t in tasks]


def place_task(column: Column, task: Task, *, index: int = 0) -> Column:
  """Insert ``task`` into ``column`` (front by default), keeping status in sync.

  Every code path that puts a task into a column goes through here so the
  status back-reference can never drift from column membership.
  """
  tasks = [t for t in column.tasks if t.id != task.id]
  index = max(0, min(index, len(tasks)))
  tasks.insert(index, task.model_copy(update={"status": column.id}))
  return column.model_copy(update={"tasks": tasks})


def new_column(title: str, *, wip_limit: int | None = None) -> Column:
  return Column(id=generate_id("col"), title=title, tasks=[], wipLimit=wip_limit)


def default_columns() -> list[Column]:
  return [
    new_column("To Do", wip_limit=5),
    new_column("In Progress", wip_limit=3),
    new_column("Done"),
  ]


def new_board(name: str) -> Board:
  return Board(id=generate_id("board"), name=name, columns=default_columns(), theme=BoardTheme(), createdAt=now_iso())


def _sample_task(content: str, priority: Priority, *, description: str, tags: list[str], checklist: list[str] | None = None, done: int = 0) -> Task:
  items = [ChecklistItem(id=generate_id("cl"), text=text, completed=i < done) for i, text in enumerate(checklist or [])]
  return Task(
    id=generate_id("task"),
    content=content,
    priority=priority,
    description=description,
    tags=tags,
    checklist=items,
    createdAt=now_iso(),
  )


def seeded_board(name: str = FIRST_BOARD_NAME) -> Board:
  """The board a brand-new session starts with, pre-filled with a few sample tasks."""
  board = new_board(name)
  todo, doing, done = board.columns
  samples = {
    todo.id: [
      _sample_task(
        "Design the user interface mockup",
        "high",
        description="Create mockups for the main board and task details.",
        tags=["design", "UI"],
        checklist=["Research color palettes", "Sketch wireframes"],
        done=1,
      ),
      _sample_task(
        "Set up the project structure",
        "medium",
        description="Initialize the repository, install dependencies, configure tooling.",
        tags=["dev", "setup"],
      ),
    ],
    doing.id: [
      _sample_task("Develop the board component", "high", description="Build the main drag-and-drop interface.", tags=["dev", "kanban"]),
    ],
    done.id: [
      _sample_task("Gather project requirements", "medium", description="Define features and user stories.", tags=["planning"]),
    ],
  }
  columns = [c.model_copy(update={"tasks": bind_tasks(c.id, samples.get(c.id, []))}) for c in board.columns]
  return board.model_copy(update={"columns": columns})
