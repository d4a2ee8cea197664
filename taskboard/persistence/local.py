from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from taskboard.models import Board
from taskboard.persistence.base import boards_payload

logger = logging.getLogger(__name__)

BOARDS_KEY = "kanbanBoards"
ACTIVE_BOARD_KEY = "activeKanbanBoardId"


class KeyValueStorage(Protocol):
  def get(self, key: str) -> str | None: ...

  def set(self, key: str, value: str) -> None: ...

  def remove(self, key: str) -> None: ...


class MemoryStorage:
  def __init__(self, initial: dict[str, str] | None = None) -> None:
    self.items: dict[str, str] = dict(initial or {})

  def get(self, key: str) -> str | None:
    return self.items.get(key)

  def set(self, key: str, value: str) -> None:
    self.items[key] = value

  def remove(self, key: str) -> None:
    self.items.pop(key, None)


class JsonFileStorage:
  """String key/value pairs kept in one JSON file on the local disk."""

  def __init__(self, path: str | Path) -> None:
    self.path = Path(path)

  def _read(self) -> dict[str, str]:
    try:
      raw = self.path.read_text(encoding="utf-8")
    except FileNotFoundError:
      return {}
    try:
      data = json.loads(raw)
    except json.JSONDecodeError:
      logger.warning("Local storage file %s is not valid JSON; starting empty", self.path)
      return {}
    if not isinstance(data, dict):
      return {}
    return {str(k): v for k, v in data.items() if isinstance(v, str)}

  def _write(self, data: dict[str, str]) -> None:
    self.path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
    try:
      with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(data, f)
      os.replace(tmp, self.path)
    except BaseException:
      Path(tmp).unlink(missing_ok=True)
      raise

  def get(self, key: str) -> str | None:
    return self._read().get(key)

  def set(self, key: str, value: str) -> None:
    data = self._read()
    data[key] = value
    self._write(data)

  def remove(self, key: str) -> None:
    data = self._read()
    if key in data:
      del data[key]
      self._write(data)


class LocalAdapter:
  """Guest-session persistence. Storage calls are synchronous; the async
  signatures only satisfy the shared adapter interface."""

  def __init__(self, storage: KeyValueStorage) -> None:
    self._storage = storage

  async def load(self) -> dict[str, Any] | None:
    raw_boards = self._storage.get(BOARDS_KEY)
    active = self._storage.get(ACTIVE_BOARD_KEY)
    if raw_boards is None and active is None:
      return None
    boards: Any = []
    if raw_boards is not None:
      try:
        boards = json.loads(raw_boards)
      except json.JSONDecodeError:
        logger.error("Failed to parse boards from local storage; falling back to defaults")
        boards = []
    return {"boards": boards, "activeBoardId": active}

  async def save(self, boards: list[Board], active_board_id: str | None) -> None:
    self._storage.set(BOARDS_KEY, json.dumps(boards_payload(boards)))
    if active_board_id:
      self._storage.set(ACTIVE_BOARD_KEY, active_board_id)
    else:
      self._storage.remove(ACTIVE_BOARD_KEY)

  async def initialize(self, boards: list[Board], active_board_id: str | None) -> None:
    await self.save(boards, active_board_id)
