from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from taskboard.ai.providers import IntentProvider, IntentProviderError, board_context
from taskboard.outcomes import Outcome
from taskboard.resolver import TaskActionResolver
from taskboard.store import BoardStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatTurn:
  response: str
  notice: str | None = None
  outcome: Outcome | None = None


async def respond(query: str, *, store: BoardStore, provider: IntentProvider, resolver: TaskActionResolver) -> ChatTurn:
  context = board_context(store.active_board())
  try:
    reply = await provider.resolve_intent(query=query, context=context)
  except (httpx.HTTPError, IntentProviderError) as e:
    logger.warning("Intent provider request failed: %s", e)
    return ChatTurn(response="I couldn't reach the assistant right now. Please try again in a moment.")
  if reply.taskAction is None:
    return ChatTurn(response=reply.response)
  outcome = resolver.resolve(reply.taskAction)
  return ChatTurn(response=reply.response, notice=outcome.message, outcome=outcome)
