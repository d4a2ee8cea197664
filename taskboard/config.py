from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  app_version: str = "v2026-10-17"
  log_level: str = "INFO"

  # Identity is owned elsewhere; these only seed the session the API starts with.
  session_mode: str = "guest"  # guest | authenticated
  session_user_id: str | None = None

  local_storage_path: str = "data/guest-board.json"

  remote_base_url: str | None = None
  remote_token: str | None = None
  remote_collection: str = "users"
  remote_timeout_seconds: float = 30.0

  # Auto-complete checklist items when a task lands in a "Done" column.
  automation_enabled: bool = False

  ai_provider: str = "local"  # local | openai
  openai_api_key: str | None = None
  openai_base_url: str = "https://api.openai.com/v1"
  openai_model: str = "gpt-4o-mini"

  cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
