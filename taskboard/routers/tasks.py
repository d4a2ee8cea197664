from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from taskboard.deps import dump, get_store, unwrap
from taskboard.models import TaskDraft
from taskboard.schemas import ChecklistItemIn, ChecklistItemUpdateIn, MoveOut, OutcomeOut, TaskCreateIn, TaskMoveIn, TaskUpdateIn
from taskboard.store import BoardStore

router = APIRouter(tags=["tasks"])


def _column_of(store: BoardStore, task_id: str) -> str:
  found = store.find_task(task_id)
  if not found:
    raise HTTPException(
      status_code=status.HTTP_404_NOT_FOUND,
      detail={"condition": "TaskNotFound", "message": "That task no longer exists.", "identifier": task_id},
    )
  return found[0].id


@router.post("/tasks", response_model=OutcomeOut)
async def create_task(payload: TaskCreateIn, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  draft = TaskDraft.model_validate(payload.model_dump(exclude={"columnId"}))
  outcome = store.add_task(draft, payload.columnId)
  return OutcomeOut(message=outcome.message, value=dump(unwrap(outcome)))


@router.patch("/tasks/{task_id}", response_model=OutcomeOut)
async def update_task(task_id: str, payload: TaskUpdateIn, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.update_task(task_id, **payload.model_dump(exclude_unset=True))
  return OutcomeOut(message=outcome.message, value=dump(unwrap(outcome)))


@router.delete("/columns/{column_id}/tasks/{task_id}", response_model=OutcomeOut)
async def delete_task(column_id: str, task_id: str, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.delete_task(task_id, column_id)
  unwrap(outcome)
  return OutcomeOut(message=outcome.message)


@router.post("/tasks/{task_id}/move", response_model=MoveOut)
async def move_task(task_id: str, payload: TaskMoveIn, store: BoardStore = Depends(get_store)) -> MoveOut:
  outcome = store.move_task(task_id, payload.fromColumnId, payload.toColumnId, apply_automation=payload.applyAutomation)
  result = unwrap(outcome)
  return MoveOut(message=outcome.message, task=dump(result.task), automated=result.automated)


@router.post("/tasks/{task_id}/checklist", response_model=OutcomeOut)
async def add_checklist_item(task_id: str, payload: ChecklistItemIn, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.add_checklist_item(task_id, _column_of(store, task_id), payload.text)
  return OutcomeOut(message=outcome.message, value=dump(unwrap(outcome)))


@router.post("/tasks/{task_id}/checklist/{item_id}/toggle", response_model=OutcomeOut)
async def toggle_checklist_item(task_id: str, item_id: str, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.toggle_checklist_item(task_id, _column_of(store, task_id), item_id)
  return OutcomeOut(message=outcome.message, value=dump(unwrap(outcome)))


@router.patch("/tasks/{task_id}/checklist/{item_id}", response_model=OutcomeOut)
async def rename_checklist_item(
  task_id: str,
  item_id: str,
  payload: ChecklistItemUpdateIn,
  store: BoardStore = Depends(get_store),
) -> OutcomeOut:
  outcome = store.rename_checklist_item(task_id, _column_of(store, task_id), item_id, payload.text)
  return OutcomeOut(message=outcome.message, value=dump(unwrap(outcome)))


@router.delete("/tasks/{task_id}/checklist/{item_id}", response_model=OutcomeOut)
async def delete_checklist_item(task_id: str, item_id: str, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.delete_checklist_item(task_id, _column_of(store, task_id), item_id)
  unwrap(outcome)
  return OutcomeOut(message=outcome.message)
