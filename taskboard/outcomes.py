from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class Condition(str, Enum):
  """Recoverable, user-facing conditions reported by the store and resolver."""

  NO_ACTIVE_BOARD = "NoActiveBoard"
  NO_COLUMNS_AVAILABLE = "NoColumnsAvailable"
  TARGET_COLUMN_NOT_FOUND = "TargetColumnNotFound"
  TASK_NOT_FOUND = "TaskNotFound"
  AMBIGUOUS_TASK = "AmbiguousTask"
  INVALID_PRIORITY = "InvalidPriority"
  INVALID_DEADLINE = "InvalidDeadline"
  INVALID_THEME = "InvalidTheme"
  INVALID_ACTION = "InvalidAction"
  UNSUPPORTED_ACTION = "UnsupportedAction"
  COLUMN_NOT_FOUND = "ColumnNotFound"
  BOARD_NOT_FOUND = "BoardNotFound"
  CHECKLIST_ITEM_NOT_FOUND = "ChecklistItemNotFound"
  PERSISTENCE_WRITE_FAILED = "PersistenceWriteFailed"


@dataclass(frozen=True)
class Outcome(Generic[T]):
  condition: Condition | None = None
  value: T | None = None
  message: str = ""
  detail: dict[str, Any] = field(default_factory=dict)

  @property
  def ok(self) -> bool:
    return self.condition is None

  @classmethod
  def applied(cls, value: T | None = None, message: str = "") -> Outcome[T]:
    return cls(value=value, message=message)

  @classmethod
  def failed(cls, condition: Condition, message: str = "", **detail: Any) -> Outcome[T]:
    return cls(condition=condition, message=message, detail=detail)
