from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from taskboard.deps import get_store
from taskboard.schemas import DocumentOut, SessionIn, SessionOut
from taskboard.session import Session
from taskboard.store import BoardStore

router = APIRouter(tags=["session"])


def _session_out(session: Session, store: BoardStore, *, seeded: bool = False) -> SessionOut:
  err = store.last_save_error
  return SessionOut(
    mode=session.mode.value,
    userId=session.user_id,
    activeBoardId=store.active_board_id,
    boardCount=len(store.boards),
    seeded=seeded,
    lastSaveError=err.message if err else None,
  )


@router.get("/session", response_model=SessionOut)
async def get_session(request: Request, store: BoardStore = Depends(get_store)) -> SessionOut:
  return _session_out(request.app.state.session, store)


@router.post("/session", response_model=SessionOut)
async def switch_session(payload: SessionIn, request: Request, store: BoardStore = Depends(get_store)) -> SessionOut:
  """Re-establish the store for a new identity. Guest data is not carried over."""
  try:
    session = Session.from_values(payload.mode, payload.userId)
    adapter = request.app.state.adapter_factory(session)
  except ValueError as e:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
  normalized = await store.establish(adapter)
  request.app.state.session = session
  return _session_out(session, store, seeded=normalized.seeded)


@router.get("/session/document", response_model=DocumentOut)
async def get_document(store: BoardStore = Depends(get_store)) -> DocumentOut:
  return DocumentOut.of(store.document())
