"""Configuration contracts."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class ModSyncConfig(BaseModel):
    game_id: int = Field(gt=0)
    api_url: str = "https://api.mod.io/v1"
    api_key: str | None = None
    auth: str = "env"
    token: str | None = None
    state_path: Path = Path("modsync-state.json")
    cache_dir: Path = Path("modsync-cache")
    catalog_poll_seconds: float = Field(default=120.0, gt=0)
    user_poll_seconds: float = Field(default=15.0, gt=0)
    page_size: int = Field(default=100, ge=1, le=100)
    max_concurrent: int = Field(default=4, ge=1, le=20)
    transient_retry_seconds: float = Field(default=15.0, ge=0)
    unreachable_retry_seconds: float = Field(default=60.0, ge=0)
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_auth_token(self) -> ModSyncConfig:
        token = (self.token or "").strip()
        if self.auth == "token":
            if not token:
                raise ValueError("token auth requires a non-empty token")
            return self
        if token:
            raise ValueError("token must be unset when auth is not 'token'")
        if self.auth not in {"env", "token"}:
            raise ValueError("auth must be one of: env, token")
        return self
