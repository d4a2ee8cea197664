from __future__ import annotations

from typing import Any, NoReturn

from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel

from taskboard.ai.providers import IntentProvider
from taskboard.outcomes import Condition, Outcome
from taskboard.resolver import TaskActionResolver
from taskboard.store import BoardStore

_STATUS_BY_CONDITION: dict[Condition, int] = {
  Condition.NO_ACTIVE_BOARD: status.HTTP_409_CONFLICT,
  Condition.NO_COLUMNS_AVAILABLE: status.HTTP_409_CONFLICT,
  Condition.AMBIGUOUS_TASK: status.HTTP_409_CONFLICT,
  Condition.TARGET_COLUMN_NOT_FOUND: status.HTTP_404_NOT_FOUND,
  Condition.TASK_NOT_FOUND: status.HTTP_404_NOT_FOUND,
  Condition.COLUMN_NOT_FOUND: status.HTTP_404_NOT_FOUND,
  Condition.BOARD_NOT_FOUND: status.HTTP_404_NOT_FOUND,
  Condition.CHECKLIST_ITEM_NOT_FOUND: status.HTTP_404_NOT_FOUND,
  Condition.INVALID_PRIORITY: status.HTTP_400_BAD_REQUEST,
  Condition.INVALID_DEADLINE: status.HTTP_400_BAD_REQUEST,
  Condition.INVALID_THEME: status.HTTP_400_BAD_REQUEST,
  Condition.INVALID_ACTION: status.HTTP_400_BAD_REQUEST,
  Condition.UNSUPPORTED_ACTION: 422,
  Condition.PERSISTENCE_WRITE_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_store(request: Request) -> BoardStore:
  return request.app.state.store


def get_resolver(store: BoardStore = Depends(get_store)) -> TaskActionResolver:
  return TaskActionResolver(store)


def get_provider(request: Request) -> IntentProvider:
  return request.app.state.intent_provider


def raise_for_outcome(outcome: Outcome) -> NoReturn:
  if outcome.condition is None:
    raise ValueError("only failed outcomes map to an HTTP error")
  raise HTTPException(
    status_code=_STATUS_BY_CONDITION.get(outcome.condition, status.HTTP_400_BAD_REQUEST),
    detail={"condition": outcome.condition.value, "message": outcome.message, **outcome.detail},
  )


def unwrap(outcome: Outcome) -> Any:
  if not outcome.ok:
    raise_for_outcome(outcome)
  return outcome.value


def dump(value: Any) -> Any:
  if isinstance(value, BaseModel):
    return value.model_dump(mode="json", exclude_none=True)
  return value
