"""Engine facade over the playbook components.

`PlaybookEngine` is the surface a front end (CLI, HTTP API, tests) drives.
Interactive state lives in an explicit `Session` value owned by the caller;
nothing here keeps an implicit "current task" or "current scope".

Before a catalogue is loaded every query answers with `NOT_LOADED`; that is a
normal blocking state, not an error.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from bbp_playbook.engine.commands import (
    Blocked,
    GeneratedCommands,
    UnknownModeError,
    UnknownTaskError,
    generate,
)
from bbp_playbook.engine.completion_store import CompletionStore, PersistOutcome
from bbp_playbook.engine.model import Playbook, Task, load_playbook, playbook_from_mapping
from bbp_playbook.engine.placeholders import ParamMap, resolve
from bbp_playbook.engine.readiness import ReadinessVerdict, evaluate
from bbp_playbook.engine.recorder import REJECT_NO_SCOPE, RecordResult, Rejected, mark_done

logger = logging.getLogger(__name__)

REJECT_NOT_LOADED = "playbook not loaded"


@dataclass(frozen=True, slots=True)
class NotLoaded:
    """No catalogue has been loaded yet."""


NOT_LOADED = NotLoaded()


class PlaybookEngine:
    """Drive readiness, generation and completion for one catalogue."""

    def __init__(self, store: CompletionStore, *, scope_param: str = "domain") -> None:
        """Initialize the engine.

        Args:
            store: Completion store shared by every scope.
            scope_param: Parameter whose caller-supplied value is the default scope.
        """
        self.store = store
        self.scope_param = scope_param
        self._playbook: Playbook | None = None

    @property
    def playbook(self) -> Playbook | None:
        return self._playbook

    @property
    def loaded(self) -> bool:
        return self._playbook is not None

    def load_catalogue(self, source: Path | str | Mapping[str, object]) -> Playbook:
        """Load the catalogue from a file path or a deserialised mapping.

        The previous catalogue is kept if loading fails.

        Raises:
            PlaybookLoadError: If the source cannot be read or is invalid.
        """
        if isinstance(source, Mapping):
            playbook = playbook_from_mapping(source)
        else:
            playbook = load_playbook(Path(source))
        self._playbook = playbook
        return playbook

    def list_tasks(self) -> list[Task]:
        if self._playbook is None:
            return []
        return list(self._playbook.tasks)

    def get_task(self, task_id: str) -> Task:
        task = self._playbook.get_task(task_id) if self._playbook is not None else None
        if task is None:
            raise UnknownTaskError(task_id)
        return task

    def list_modes(self, task_id: str) -> list[str]:
        if self._playbook is None:
            return []
        return self._playbook.modes_of(self.get_task(task_id))

    def resolve_params(self, overrides: Mapping[str, str | None] | None = None) -> ParamMap:
        """Catalogue defaults merged with non-blank overrides, plus derived values."""
        base = self._playbook.placeholders if self._playbook is not None else {}
        return resolve(base, overrides, derive_from=self.scope_param)

    def scope_for(
        self, overrides: Mapping[str, object] | None, scope: str | None = None
    ) -> str:
        """The scope a call acts on.

        An explicit `scope` wins, even when blank. Otherwise the caller's own
        value for the scope parameter is used. Catalogue defaults never pick a
        scope: a call without one reads the `default` record and cannot mark
        anything done.
        """
        if scope is not None:
            return scope.strip()
        value = overrides.get(self.scope_param) if overrides else None
        return str(value).strip() if value is not None else ""

    def evaluate_readiness(
        self,
        task_id: str,
        params: Mapping[str, str | None] | None = None,
        scope: str | None = None,
    ) -> ReadinessVerdict | NotLoaded:
        if self._playbook is None:
            return NOT_LOADED
        task = self.get_task(task_id)
        resolved = self.resolve_params(params)
        completed = self.store.load(self.scope_for(params, scope))
        return evaluate(task, resolved, completed)

    def generate_commands(
        self,
        task_id: str,
        mode: str,
        params: Mapping[str, str | None] | None = None,
        scope: str | None = None,
    ) -> GeneratedCommands | Blocked | NotLoaded:
        """Generate the commands for a task mode, gated on readiness.

        Raises:
            SelectionError: If the task or mode does not exist.
        """
        if self._playbook is None:
            return NOT_LOADED
        resolved = self.resolve_params(params)
        completed = self.store.load(self.scope_for(params, scope))
        result = generate(self._playbook, task_id, mode, resolved, completed)
        if isinstance(result, Blocked):
            logger.info(
                "Generation blocked",
                extra={"task_id": task_id, "mode": mode, "missing": result.missing},
            )
        return result

    def mark_task_done(
        self,
        task_id: str,
        params: Mapping[str, str | None] | None = None,
        scope: str | None = None,
    ) -> RecordResult | Rejected:
        if self._playbook is None:
            return Rejected(reason=REJECT_NOT_LOADED)
        task = self.get_task(task_id)
        resolved = self.resolve_params(params)
        return mark_done(task, resolved, self.scope_for(params, scope), self.store)

    def reset_scope(self, scope: str | None) -> PersistOutcome:
        return self.store.reset(scope)


@dataclass(frozen=True, slots=True)
class Session:
    """Caller-owned interaction state.

    `completed` mirrors the store for `scope`; it is reloaded on every scope
    switch and after every mark-done or reset made through the helpers below.
    """

    scope: str = ""
    task_id: str = ""
    mode: str = ""
    overrides: dict[str, str | None] = field(default_factory=dict)
    completed: frozenset[str] = frozenset()


def open_session(engine: PlaybookEngine, scope: str = "") -> Session:
    """Start a session on `scope` with the first task and mode selected."""
    session = switch_scope(engine, Session(), scope)
    tasks = engine.list_tasks()
    if tasks:
        session = select_task(engine, session, tasks[0].id)
    return session


def switch_scope(engine: PlaybookEngine, session: Session, scope: str) -> Session:
    normalized = scope.strip()
    overrides = dict(session.overrides)
    overrides[engine.scope_param] = normalized
    return replace(
        session,
        scope=normalized,
        overrides=overrides,
        completed=frozenset(engine.store.load(normalized)),
    )


def set_param(session: Session, name: str, value: str | None) -> Session:
    overrides = dict(session.overrides)
    overrides[name] = value
    return replace(session, overrides=overrides)


def select_task(engine: PlaybookEngine, session: Session, task_id: str) -> Session:
    """Select a task and its first mode.

    Raises:
        UnknownTaskError: If the task does not exist.
    """
    modes = engine.list_modes(task_id)
    return replace(session, task_id=task_id, mode=modes[0] if modes else "")


def select_mode(engine: PlaybookEngine, session: Session, mode: str) -> Session:
    """Select a mode of the current task.

    Raises:
        UnknownModeError: If the current task has no such mode.
    """
    if mode not in engine.list_modes(session.task_id):
        raise UnknownModeError(session.task_id, mode)
    return replace(session, mode=mode)


def session_readiness(engine: PlaybookEngine, session: Session) -> ReadinessVerdict | NotLoaded:
    """Evaluate the selected task against the session's cached record."""
    if engine.playbook is None:
        return NOT_LOADED
    task = engine.get_task(session.task_id)
    return evaluate(task, engine.resolve_params(session.overrides), session.completed)


def session_mark_done(
    engine: PlaybookEngine, session: Session
) -> tuple[Session, RecordResult | Rejected]:
    """Mark the selected task done and refresh the session's record.

    A session without a scope is rejected even when the catalogue supplies a
    default value for the scope parameter.
    """
    if not session.scope:
        return session, Rejected(reason=REJECT_NO_SCOPE)
    result = engine.mark_task_done(session.task_id, session.overrides, session.scope)
    if isinstance(result, RecordResult):
        session = replace(session, completed=frozenset(result.completed))
    return session, result


def session_reset(engine: PlaybookEngine, session: Session) -> tuple[Session, PersistOutcome]:
    outcome = engine.reset_scope(session.scope)
    return replace(session, completed=frozenset()), outcome
