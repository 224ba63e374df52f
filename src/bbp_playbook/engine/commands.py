"""Command generation for a selected task and mode.

Generation is all-or-nothing: a task that is not ready yields a `Blocked`
outcome and no commands at all.
"""

from __future__ import annotations

from collections.abc import Mapping, Set
from dataclasses import dataclass

from bbp_playbook.engine.model import Playbook
from bbp_playbook.engine.placeholders import substitute_all
from bbp_playbook.engine.readiness import ReadinessVerdict, evaluate


class SelectionError(LookupError):
    """The requested task or mode does not exist."""


class UnknownTaskError(SelectionError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Unknown task: {task_id}")
        self.task_id = task_id


class UnknownModeError(SelectionError):
    def __init__(self, task_id: str, mode: str) -> None:
        super().__init__(f"Unknown mode '{mode}' for task {task_id}")
        self.task_id = task_id
        self.mode = mode


@dataclass(frozen=True, slots=True)
class GeneratedCommands:
    task_id: str
    mode: str
    commands: list[str]


@dataclass(frozen=True, slots=True)
class Blocked:
    """Generation refused because prerequisite artifacts are missing."""

    verdict: ReadinessVerdict

    @property
    def missing(self) -> list[str]:
        return self.verdict.missing


def generate(
    playbook: Playbook,
    task_id: str,
    mode_name: str,
    params: Mapping[str, object],
    completed: Set[str],
) -> GeneratedCommands | Blocked:
    """Substitute the command templates of `task_id`/`mode_name`.

    Raises:
        UnknownTaskError: If the task does not exist.
        UnknownModeError: If the task has no such mode.
    """

    task = playbook.get_task(task_id)
    if task is None:
        raise UnknownTaskError(task_id)
    mode = task.get_mode(mode_name)
    if mode is None:
        raise UnknownModeError(task_id, mode_name)

    verdict = evaluate(task, params, completed)
    if not verdict.ready:
        return Blocked(verdict=verdict)

    return GeneratedCommands(
        task_id=task.id,
        mode=mode_name,
        commands=substitute_all(mode.templates, params),
    )
