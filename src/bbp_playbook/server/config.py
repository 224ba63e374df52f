"""Configuration for the REST server.

The server starts even when the playbook cannot be loaded; endpoints that need
the catalogue answer 503 until it is fixed and reloaded.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """Settings for the REST API."""

    playbook_path: Path = Field(
        default=Path("playbooks/pentest.yaml"), validation_alias="PLAYBOOK_PATH"
    )
    state_path: Path = Field(default=Path("agent_state"), validation_alias="BBP_STATE_PATH")
    scope_param: str = Field(default="domain", validation_alias="BBP_SCOPE_PARAM")

    # Dev-friendly CORS. Override via BBP_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="BBP_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    @property
    def completion_state_file(self) -> Path:
        return self.state_path / "completed_files.json"

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
