from __future__ import annotations

from fastapi import APIRouter, Depends

from taskboard.deps import dump, get_store, unwrap
from taskboard.schemas import (
  BoardCreateIn,
  BoardThemeIn,
  BoardUpdateIn,
  ColumnCreateIn,
  ColumnUpdateIn,
  DocumentOut,
  OutcomeOut,
)
from taskboard.store import BoardStore

router = APIRouter(tags=["boards"])


@router.get("/boards", response_model=DocumentOut)
async def list_boards(store: BoardStore = Depends(get_store)) -> DocumentOut:
  return DocumentOut.of(store.document())


@router.post("/boards", response_model=OutcomeOut)
async def create_board(payload: BoardCreateIn, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.add_board(payload.name)
  return OutcomeOut(message=outcome.message, value=dump(unwrap(outcome)))


@router.patch("/boards/{board_id}", response_model=OutcomeOut)
async def rename_board(board_id: str, payload: BoardUpdateIn, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.rename_board(board_id, payload.name)
  return OutcomeOut(message=outcome.message, value=dump(unwrap(outcome)))


@router.delete("/boards/{board_id}", response_model=OutcomeOut)
async def delete_board(board_id: str, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.delete_board(board_id)
  unwrap(outcome)
  return OutcomeOut(message=outcome.message, value={"activeBoardId": store.active_board_id})


@router.put("/boards/{board_id}/theme", response_model=OutcomeOut)
async def update_theme(board_id: str, payload: BoardThemeIn, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  # Only keys the client sent; an explicit null or "" clears that key.
  outcome = store.update_theme(board_id, payload.model_dump(exclude_unset=True))
  return OutcomeOut(message=outcome.message, value=dump(unwrap(outcome)))


@router.post("/boards/{board_id}/activate", response_model=OutcomeOut)
async def activate_board(board_id: str, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.set_active_board(board_id)
  return OutcomeOut(message=outcome.message, value=dump(unwrap(outcome)))


@router.post("/columns", response_model=OutcomeOut)
async def create_column(payload: ColumnCreateIn, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.add_column(payload.title)
  return OutcomeOut(message=outcome.message, value=dump(unwrap(outcome)))


@router.patch("/columns/{column_id}", response_model=OutcomeOut)
async def update_column(column_id: str, payload: ColumnUpdateIn, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  fields = payload.model_dump(exclude_unset=True)
  outcome = None
  if "title" in fields:
    outcome = store.rename_column(column_id, fields["title"] or "")
    unwrap(outcome)
  if "wipLimit" in fields:
    outcome = store.set_column_wip_limit(column_id, fields["wipLimit"])
    unwrap(outcome)
  if outcome is None:
    column = store.find_column(column_id)
    return OutcomeOut(value=dump(column))
  return OutcomeOut(message=outcome.message, value=dump(outcome.value))


@router.delete("/columns/{column_id}", response_model=OutcomeOut)
async def delete_column(column_id: str, store: BoardStore = Depends(get_store)) -> OutcomeOut:
  outcome = store.delete_column(column_id)
  unwrap(outcome)
  return OutcomeOut(message=outcome.message)
