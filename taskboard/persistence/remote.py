from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from taskboard.models import Board
from taskboard.persistence.base import boards_payload

logger = logging.getLogger(__name__)


class DocumentStoreError(RuntimeError):
  def __init__(self, *, status_code: int, message: str, details: dict[str, Any] | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code
    self.message = message
    self.details = details or {}


class DocumentStore(Protocol):
  async def get(self, path: str) -> dict[str, Any] | None: ...

  async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None: ...

  async def update(self, path: str, fields: dict[str, Any]) -> None: ...


def _extract_error(payload: Any) -> tuple[str, dict[str, Any]]:
  if isinstance(payload, dict):
    err = payload.get("error")
    if isinstance(err, dict):
      msg = str(err.get("message") or "").strip() or "Document request failed"
      return msg, {"error": err}
    if isinstance(err, str) and err.strip():
      return err.strip(), {}
    detail = payload.get("detail")
    if detail:
      return str(detail)[:500], {}
  if isinstance(payload, str) and payload.strip():
    return payload.strip()[:500], {}
  return "Document request failed", {}


async def _request_json(client: httpx.AsyncClient, method: str, path: str, **kwargs: Any) -> Any:
  r = await client.request(method, path, **kwargs)
  if r.status_code >= 400:
    try:
      payload = r.json()
    except Exception:
      payload = (r.text or "")[:800]
    msg, details = _extract_error(payload)
    raise DocumentStoreError(status_code=r.status_code, message=msg, details=details)
  if r.status_code == 204 or not r.content:
    return None
  return r.json()


def normalize_base_url(base_url: str) -> str:
  b = (base_url or "").strip().rstrip("/")
  if not b:
    raise ValueError("base_url is required")
  if not (b.startswith("http://") or b.startswith("https://")):
    b = "https://" + b
  return b


@dataclass
class HttpDocumentStore:
  """JSON document service reachable over HTTP.

  ``GET /documents/{path}`` returns the document (404 when absent),
  ``PUT`` replaces or merges it, ``PATCH`` updates the listed top-level
  fields and fails when the document does not exist.
  """

  base_url: str
  token: str | None = None
  timeout: float = 30.0
  transport: httpx.AsyncBaseTransport | None = None

  def httpx_client(self) -> httpx.AsyncClient:
    headers = {"Accept": "application/json"}
    if self.token:
      headers["Authorization"] = f"Bearer {self.token}"
    return httpx.AsyncClient(
      base_url=normalize_base_url(self.base_url),
      headers=headers,
      timeout=self.timeout,
      transport=self.transport,
    )

  async def get(self, path: str) -> dict[str, Any] | None:
    async with self.httpx_client() as client:
      try:
        data = await _request_json(client, "GET", f"/documents/{path}")
      except DocumentStoreError as e:
        if e.status_code == 404:
          return None
        raise
    return data if isinstance(data, dict) else None

  async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
    params = {"merge": "true"} if merge else None
    async with self.httpx_client() as client:
      await _request_json(client, "PUT", f"/documents/{path}", json=data, params=params)

  async def update(self, path: str, fields: dict[str, Any]) -> None:
    async with self.httpx_client() as client:
      await _request_json(client, "PATCH", f"/documents/{path}", json=fields)


@dataclass
class InMemoryDocumentStore:
  """Process-local document store with the same semantics as the HTTP one."""

  documents: dict[str, dict[str, Any]] = field(default_factory=dict)

  async def get(self, path: str) -> dict[str, Any] | None:
    doc = self.documents.get(path)
    return copy.deepcopy(doc) if doc is not None else None

  async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
    if merge and path in self.documents:
      self.documents[path] = {**self.documents[path], **copy.deepcopy(data)}
    else:
      self.documents[path] = copy.deepcopy(data)

  async def update(self, path: str, fields: dict[str, Any]) -> None:
    if path not in self.documents:
      raise DocumentStoreError(status_code=404, message=f"Document {path} not found")
    self.documents[path] = {**self.documents[path], **copy.deepcopy(fields)}


class RemoteAdapter:
  """Per-identity document: ``boards`` and ``activeBoardId`` live next to
  unrelated fields (settings, chat history) that must survive every write."""

  def __init__(self, store: DocumentStore, user_id: str, *, collection: str = "users") -> None:
    if not user_id:
      raise ValueError("user_id is required")
    self._store = store
    self.user_id = user_id
    self.collection = collection

  @property
  def path(self) -> str:
    return f"{self.collection}/{self.user_id}"

  async def load(self) -> dict[str, Any] | None:
    doc = await self._store.get(self.path)
    if doc is None:
      logger.info("No board document for user %s; treating as a new user", self.user_id)
      return None
    return {"boards": doc.get("boards"), "activeBoardId": doc.get("activeBoardId")}

  async def save(self, boards: list[Board], active_board_id: str | None) -> None:
    await self._store.update(self.path, {"boards": boards_payload(boards), "activeBoardId": active_board_id})

  async def initialize(self, boards: list[Board], active_board_id: str | None) -> None:
    await self._store.set(self.path, {"boards": boards_payload(boards), "activeBoardId": active_board_id}, merge=True)
