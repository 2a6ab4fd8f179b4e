"""Runtime configuration.

Values come from ``QUORUM_*`` environment variables (or a ``.env`` file),
optionally backed by a YAML settings file named by ``QUORUM_CONFIG``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_HOME = Path.home() / ".quorum"


class Settings(BaseSettings):
    """Engine settings."""

    model_config = SettingsConfigDict(env_prefix="QUORUM_", env_file=".env", extra="ignore")

    database_url: str = f"sqlite:///{_HOME / 'quorum.db'}"
    threshold: int = Field(default=3, ge=1)
    reason_min_length: int = Field(default=10, ge=1)
    list_default_limit: int = Field(default=20, ge=1)
    list_max_limit: int = Field(default=50, ge=1)
    announcement_reason_chars: int = Field(default=100, ge=1)
    audit_dir: str = str(_HOME / "audit")
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    def clamp_limit(self, limit: Optional[int]) -> int:
        """Clamp a requested listing size into ``[1, list_max_limit]``."""
        if limit is None:
            limit = self.list_default_limit
        return max(1, min(int(limit), self.list_max_limit))


def _read_yaml(path: str | Path) -> dict[str, Any]:
    data = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def load_settings(path: str | Path | None = None) -> Settings:
    """Build settings from the environment, filling gaps from a YAML file.

    Environment variables win over file values.
    """
    path = path or os.environ.get("QUORUM_CONFIG")
    if not path:
        return Settings()
    file_values = _read_yaml(path)
    env_keys = {
        name for name in Settings.model_fields
        if f"QUORUM_{name.upper()}" in os.environ
    }
    overrides = {k: v for k, v in file_values.items() if k in Settings.model_fields and k not in env_keys}
    return Settings(**overrides)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
