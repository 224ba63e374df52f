"""Configuration for the playbook engine and CLI.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PlaybookSettings(BaseSettings):
    """Settings for the playbook engine.

    Environment variables:
    - PLAYBOOK_PATH           (optional)
    - LOG_LEVEL               (optional)
    - BBP_STATE_PATH          (optional)
    - BBP_SCOPE_PARAM         (optional)
    - BBP_STRICT_PERSISTENCE  (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `PlaybookSettings(_env_file=path_to_env)`.
    """

    playbook_path: Path = Field(
        default=Path("playbooks/pentest.yaml"),
        validation_alias="PLAYBOOK_PATH",
        description="YAML playbook the engine loads its tasks from",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    state_path: Path = Field(
        default=Path("agent_state"),
        validation_alias="BBP_STATE_PATH",
        description="Directory where completion records are persisted",
    )

    scope_param: str = Field(
        default="domain",
        validation_alias="BBP_SCOPE_PARAM",
        description=(
            "Parameter whose resolved value is used as the completion scope when a "
            "command does not pass --scope explicitly"
        ),
    )

    strict_persistence: bool = Field(
        default=False,
        validation_alias="BBP_STRICT_PERSISTENCE",
        description=(
            "If true, a completion record that could not be persisted makes the CLI exit "
            "non-zero instead of only printing a warning"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("scope_param")
    @classmethod
    def _require_scope_param(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("BBP_SCOPE_PARAM must not be blank")
        return value.strip()

    @property
    def completion_state_file(self) -> Path:
        """Path where completion records are persisted."""

        return self.state_path / "completed_files.json"
