from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from taskboard.models import BoardDocument


class SessionIn(BaseModel):
  mode: str = "guest"
  userId: str | None = None


class SessionOut(BaseModel):
  mode: str
  userId: str | None = None
  activeBoardId: str | None = None
  boardCount: int = 0
  seeded: bool = False
  lastSaveError: str | None = None


class DocumentOut(BaseModel):
  boards: list[dict[str, Any]]
  activeBoardId: str | None = None

  @classmethod
  def of(cls, document: BoardDocument) -> DocumentOut:
    return cls.model_validate(document.to_payload())


class BoardCreateIn(BaseModel):
  name: str = ""


class BoardUpdateIn(BaseModel):
  name: str


class BoardThemeIn(BaseModel):
  primaryColor: str | None = None
  backgroundColor: str | None = None
  columnHeaderColor: str | None = None
  cardColor: str | None = None


class ColumnCreateIn(BaseModel):
  title: str = ""


class ColumnUpdateIn(BaseModel):
  title: str | None = None
  wipLimit: int | None = None


class TaskCreateIn(BaseModel):
  content: str = ""
  columnId: str | None = None
  priority: str = "medium"
  deadline: str | None = None
  description: str | None = None
  tags: list[str] = []
  dependencies: list[str] = []
  checklist: list[str] = []


class TaskUpdateIn(BaseModel):
  content: str | None = None
  priority: str | None = None
  deadline: str | None = None
  description: str | None = None
  tags: list[str] | None = None
  dependencies: list[str] | None = None


class TaskMoveIn(BaseModel):
  fromColumnId: str
  toColumnId: str
  applyAutomation: bool | None = None


class ChecklistItemIn(BaseModel):
  text: str = ""


class ChecklistItemUpdateIn(BaseModel):
  text: str


class OutcomeOut(BaseModel):
  message: str = ""
  value: Any = None


class MoveOut(BaseModel):
  message: str = ""
  task: dict[str, Any] | None = None
  automated: bool = False


class AIActionIn(BaseModel):
  action: dict[str, Any]


class AIChatIn(BaseModel):
  query: str = Field(min_length=1)


class AIChatOut(BaseModel):
  response: str
  notice: str | None = None
  condition: str | None = None
  applied: bool = False
