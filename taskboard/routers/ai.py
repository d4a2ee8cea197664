from __future__ import annotations

from fastapi import APIRouter, Depends

from taskboard.ai.chat import respond
from taskboard.ai.providers import IntentProvider
from taskboard.deps import dump, get_provider, get_resolver, get_store, unwrap
from taskboard.resolver import TaskActionResolver
from taskboard.schemas import AIActionIn, AIChatIn, AIChatOut, OutcomeOut
from taskboard.store import BoardStore, MoveResult

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/actions", response_model=OutcomeOut)
async def apply_action(payload: AIActionIn, resolver: TaskActionResolver = Depends(get_resolver)) -> OutcomeOut:
  outcome = resolver.resolve(payload.action)
  value = unwrap(outcome)
  if isinstance(value, MoveResult):
    value = value.task
  return OutcomeOut(message=outcome.message, value=dump(value))


@router.post("/chat", response_model=AIChatOut)
async def chat(
  payload: AIChatIn,
  store: BoardStore = Depends(get_store),
  provider: IntentProvider = Depends(get_provider),
  resolver: TaskActionResolver = Depends(get_resolver),
) -> AIChatOut:
  # Failed actions are part of the conversation, not HTTP errors.
  turn = await respond(payload.query, store=store, provider=provider, resolver=resolver)
  outcome = turn.outcome
  return AIChatOut(
    response=turn.response,
    notice=turn.notice,
    condition=outcome.condition.value if outcome and outcome.condition else None,
    applied=bool(outcome and outcome.ok),
  )
