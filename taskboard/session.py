from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionMode(str, Enum):
  GUEST = "guest"
  AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class Session:
  """Identity handed to the engine by the auth layer; never read from globals."""

  mode: SessionMode
  user_id: str | None = None

  def __post_init__(self) -> None:
    if self.mode == SessionMode.AUTHENTICATED and not self.user_id:
      raise ValueError("authenticated sessions require a user_id")

  @property
  def is_guest(self) -> bool:
    return self.mode == SessionMode.GUEST

  @classmethod
  def guest(cls) -> Session:
    return cls(mode=SessionMode.GUEST)

  @classmethod
  def authenticated(cls, user_id: str) -> Session:
    return cls(mode=SessionMode.AUTHENTICATED, user_id=user_id)

  @classmethod
  def from_values(cls, mode: str, user_id: str | None = None) -> Session:
    m = SessionMode((mode or "guest").strip().lower())
    return cls(mode=m, user_id=user_id if m == SessionMode.AUTHENTICATED else None)
