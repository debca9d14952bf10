from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Process settings.

    Notes:
    - Service credentials are not settings: they live in the identity config
      file, or in the usual `OS_*` variables when no file is configured.
    - Override via env vars, e.g. `AUTHORIZER_CONFIG_PATH=/etc/kittenhouse/auth.yaml`.
    """

    model_config = SettingsConfigDict(env_prefix="AUTHORIZER_", extra="ignore")

    config_path: str | None = None
    log_level: str = "INFO"
    request_timeout_seconds: float = 10.0

    def resolved_config_path(self) -> Path | None:
        if self.config_path:
            return Path(self.config_path)
        return None


@lru_cache
def get_settings() -> Settings:
    return Settings()
