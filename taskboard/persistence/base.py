from __future__ import annotations

from typing import Any, Protocol

from taskboard.models import Board


class PersistenceAdapter(Protocol):
  async def load(self) -> dict[str, Any] | None:
    """Raw ``{"boards", "activeBoardId"}`` payload, or ``None`` when nothing was ever stored."""
    ...

  async def save(self, boards: list[Board], active_board_id: str | None) -> None: ...

  async def initialize(self, boards: list[Board], active_board_id: str | None) -> None:
    """First write for an identity that had no stored document."""
    ...


def boards_payload(boards: list[Board]) -> list[dict[str, Any]]:
  return [b.to_payload() for b in boards]
