from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
  resolved = logging.getLevelName((level or "INFO").upper())
  if not isinstance(resolved, int):
    resolved = logging.INFO
  logging.basicConfig(level=resolved, format=LOG_FORMAT)
  logging.getLogger("taskboard").setLevel(resolved)
