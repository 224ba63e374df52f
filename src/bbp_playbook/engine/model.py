"""The playbook model: tasks, modes and command templates.

A playbook is a YAML document of the shape::

    placeholders:
      domain: example.com
    tasks:
      - id: recon
        name: Subdomain recon
        phase: "1"
        tags: [recon]
        notes: ["..."]
        requires_files: []
        produces_files: ["{outdir}/hosts.txt"]
        modes:
          default:
            commands:
              - cmd: "subfinder -d {domain} -o {outdir}/hosts.txt"

Missing optional fields (or explicit `null`) default to empty collections.
A document without a non-empty `tasks` list is rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

EMPTY_TASKS_MESSAGE = "Playbook loaded, but tasks[] is empty/missing."


class PlaybookLoadError(ValueError):
    """The playbook could not be read, parsed or validated."""


class Command(BaseModel):
    cmd: str

    model_config = ConfigDict(extra="ignore")


class Mode(BaseModel):
    """A named execution variant of a task."""

    commands: list[Command] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("commands", mode="before")
    @classmethod
    def _coerce_commands(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, list):
            # Shorthand: a bare string is a command template.
            return [{"cmd": item} if isinstance(item, str) else item for item in value]
        return value

    @property
    def templates(self) -> list[str]:
        return [c.cmd for c in self.commands]


class Task(BaseModel):
    """A named unit of work with prerequisites, outputs and modes."""

    id: str
    name: str = ""
    phase: str | None = None
    tags: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    requires_files: list[str] = Field(default_factory=list)
    produces_files: list[str] = Field(default_factory=list)
    modes: dict[str, Mode] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @field_validator("id")
    @classmethod
    def _require_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("task id must not be blank")
        return value

    @field_validator("phase", mode="before")
    @classmethod
    def _stringify_phase(cls, value: object) -> object:
        # YAML reads `phase: 1` as an int.
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("tags", "notes", "requires_files", "produces_files", mode="before")
    @classmethod
    def _null_list(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("modes", mode="before")
    @classmethod
    def _null_modes(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return {name: ({} if mode is None else mode) for name, mode in value.items()}
        return value

    @property
    def display_name(self) -> str:
        return self.name.strip() or self.id

    def get_mode(self, name: str) -> Mode | None:
        return self.modes.get(name)


class Playbook(BaseModel):
    """A parsed catalogue of tasks plus default placeholder values."""

    placeholders: dict[str, str | None] = Field(default_factory=dict)
    tasks: list[Task]

    model_config = ConfigDict(extra="ignore")

    @field_validator("placeholders", mode="before")
    @classmethod
    def _stringify_placeholders(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return {str(k): (None if v is None else str(v)) for k, v in value.items()}
        return value

    @field_validator("tasks")
    @classmethod
    def _unique_ids(cls, tasks: list[Task]) -> list[Task]:
        if not tasks:
            raise ValueError(EMPTY_TASKS_MESSAGE)
        seen: set[str] = set()
        for task in tasks:
            if task.id in seen:
                raise ValueError(f"Duplicate task id: {task.id}")
            seen.add(task.id)
        return tasks

    def get_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def modes_of(self, task: Task) -> list[str]:
        """Mode names in declaration order."""

        return list(task.modes)


def playbook_from_mapping(data: object) -> Playbook:
    """Validate an already-deserialised playbook document."""

    if not isinstance(data, Mapping):
        raise PlaybookLoadError(
            f"Playbook must be a mapping with a 'tasks' list, got {type(data).__name__}"
        )

    tasks: Any = data.get("tasks")
    if not isinstance(tasks, list) or not tasks:
        raise PlaybookLoadError(EMPTY_TASKS_MESSAGE)

    try:
        playbook = Playbook.model_validate(dict(data))
    except ValidationError as e:
        raise PlaybookLoadError(f"Invalid playbook: {e}") from e

    logger.debug("Playbook validated", extra={"tasks": len(playbook.tasks)})
    return playbook


def parse_playbook(text: str) -> Playbook:
    """Parse YAML text into a playbook."""

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise PlaybookLoadError(f"YAML parse error: {e}") from e
    return playbook_from_mapping(data)


def load_playbook(path: Path) -> Playbook:
    """Read and parse the playbook at `path`."""

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PlaybookLoadError(f"Failed to read playbook {path}: {e}") from e

    playbook = parse_playbook(text)
    logger.info("Playbook loaded", extra={"path": str(path), "tasks": len(playbook.tasks)})
    return playbook
