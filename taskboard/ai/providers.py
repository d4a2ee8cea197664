from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ValidationError

from taskboard.config import Settings, settings as default_settings
from taskboard.models import Board
from taskboard.resolver import TaskAction

logger = logging.getLogger(__name__)


class IntentProviderError(RuntimeError):
  pass


class ChatReply(BaseModel):
  response: str
  taskAction: TaskAction | None = None


def board_context(board: Board | None) -> dict[str, Any]:
  """Snapshot of the active board in the shape the assistant is prompted with."""
  if board is None:
    return {}
  tasks = []
  for column in board.columns:
    for t in column.tasks:
      item: dict[str, Any] = {"id": t.id, "content": t.content, "statusTitle": column.title, "priority": t.priority}
      if t.deadline:
        item["deadline"] = t.deadline
      tasks.append(item)
  return {"boardName": board.name, "columnNames": [c.title for c in board.columns], "tasks": tasks}


class IntentProvider(Protocol):
  async def resolve_intent(self, *, query: str, context: dict[str, Any]) -> ChatReply: ...


def _unquote(value: str) -> str:
  v = value.strip()
  if len(v) >= 2 and v[0] == v[-1] and v[0] in ("'", '"'):
    return v[1:-1].strip()
  return v


_MOVE_RE = re.compile(r"^(?:move|mark)\s+(?P<task>.+?)\s+(?:to|as)\s+(?P<target>.+)$", re.IGNORECASE)
_PRIORITY_RE = re.compile(r"^set\s+(?:the\s+)?priority\s+(?:of|for)\s+(?P<task>.+?)\s+to\s+(?P<value>\S+)$", re.IGNORECASE)
_DEADLINE_RE = re.compile(r"^set\s+(?:the\s+)?deadline\s+(?:of|for)\s+(?P<task>.+?)\s+to\s+(?P<value>\S+)$", re.IGNORECASE)
_CREATE_RE = re.compile(
  r"^(?:create|add)\s+(?:a\s+)?(?:new\s+)?task\s+(?P<content>.+?)(?:\s+with\s+(?P<priority>high|medium|low)\s+priority)?$",
  re.IGNORECASE,
)
_DELETE_RE = re.compile(r"^(?:delete|remove)\s+(?:the\s+)?task\s+(?P<task>.+)$", re.IGNORECASE)


@dataclass
class LocalIntentProvider:
  """Offline, deterministic command grammar. Good enough for tests and demos."""

  async def resolve_intent(self, *, query: str, context: dict[str, Any]) -> ChatReply:
    q = (query or "").strip().rstrip(".!?").strip()

    m = _PRIORITY_RE.match(q)
    if m:
      task = _unquote(m["task"])
      return ChatReply(
        response=f'Setting the priority of "{task}".',
        taskAction=TaskAction(type="updatePriority", taskIdentifier=task, targetValue=m["value"].lower()),
      )
    m = _DEADLINE_RE.match(q)
    if m:
      task = _unquote(m["task"])
      return ChatReply(
        response=f'Setting the deadline of "{task}".',
        taskAction=TaskAction(type="setDeadline", taskIdentifier=task, targetValue=m["value"]),
      )
    m = _CREATE_RE.match(q)
    if m:
      content = _unquote(m["content"])
      details: dict[str, Any] = {"content": content}
      if m["priority"]:
        details["priority"] = m["priority"].lower()
      return ChatReply(
        response=f'Creating "{content}".',
        taskAction=TaskAction.model_validate({"type": "createTask", "taskDetails": details}),
      )
    m = _DELETE_RE.match(q)
    if m:
      task = _unquote(m["task"])
      return ChatReply(response=f'Deleting "{task}".', taskAction=TaskAction(type="deleteTask", taskIdentifier=task))
    m = _MOVE_RE.match(q)
    if m:
      task = _unquote(m["task"])
      target = _unquote(m["target"])
      return ChatReply(
        response=f'Moving "{task}" to "{target}".',
        taskAction=TaskAction(type="updateStatus", taskIdentifier=task, targetValue=target),
      )

    if not context:
      return ChatReply(response="You don't have an active board yet. Create one to get started.")
    tasks = context.get("tasks") or []
    columns = context.get("columnNames") or []
    counts = ", ".join(f"{name}: {sum(1 for t in tasks if t.get('statusTitle') == name)}" for name in columns)
    return ChatReply(
      response=f'Your board "{context.get("boardName")}" has {len(tasks)} task(s) ({counts or "no columns"}).'
    )


SYSTEM_PROMPT = (
  "You are an embedded assistant for a task board. Reply with a JSON object "
  '{"response": string, "taskAction"?: {"type": "updateStatus"|"updatePriority"|"createTask"|"deleteTask"|"setDeadline"|"assignTask", '
  '"taskIdentifier"?: string, "targetValue"?: string, "taskDetails"?: {"content": string, "priority"?: "high"|"medium"|"low", '
  '"deadline"?: string, "description"?: string}}}. Only include taskAction when the user asks to change the board. '
  "Identify tasks by their exact content or id and columns by their exact title from the context."
)


@dataclass
class OpenAICompatibleProvider:
  api_key: str
  base_url: str
  model: str = "gpt-4o-mini"
  timeout: float = 60.0
  transport: httpx.AsyncBaseTransport | None = None

  async def resolve_intent(self, *, query: str, context: dict[str, Any]) -> ChatReply:
    headers = {"Authorization": f"Bearer {self.api_key}"}
    async with httpx.AsyncClient(base_url=self.base_url, headers=headers, timeout=self.timeout, transport=self.transport) as client:
      # OpenAI-compatible chat completions API.
      r = await client.post(
        "/chat/completions",
        json={
          "model": self.model,
          "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"Context:\n{json.dumps(context)}\n\nQuery:\n{query}"},
          ],
          "temperature": 0.2,
          "response_format": {"type": "json_object"},
        },
      )
      r.raise_for_status()
    try:
      content = r.json()["choices"][0]["message"]["content"] or ""
      if not isinstance(content, str):
        raise TypeError(f"message content is {type(content).__name__}")
    except (ValueError, KeyError, IndexError, TypeError) as e:
      raise IntentProviderError(f"Malformed completion response: {e!r}") from e
    try:
      return ChatReply.model_validate(json.loads(content))
    except (json.JSONDecodeError, ValidationError):
      logger.warning("Assistant reply was not a valid action payload; using it as plain text")
      return ChatReply(response=content)


def get_intent_provider(cfg: Settings | None = None) -> IntentProvider:
  cfg = cfg or default_settings
  if cfg.ai_provider.lower() == "openai":
    if not cfg.openai_api_key:
      raise RuntimeError("AI_PROVIDER=openai requires OPENAI_API_KEY")
    return OpenAICompatibleProvider(api_key=cfg.openai_api_key, base_url=cfg.openai_base_url, model=cfg.openai_model)
  return LocalIntentProvider()
