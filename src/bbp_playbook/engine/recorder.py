"""Recording task completion.

Marking a task done adds its substituted produced artifacts to the completion
record of the active scope. This is the only place records grow; the only way
they shrink is a reset of the whole scope.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from bbp_playbook.engine.completion_store import CompletionStore, PersistOutcome
from bbp_playbook.engine.model import Task
from bbp_playbook.engine.readiness import resolve_produces

logger = logging.getLogger(__name__)

REJECT_NO_SCOPE = "no active scope selected"
REJECT_NOTHING_PRODUCIBLE = "task declares nothing producible"


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: str


@dataclass(frozen=True, slots=True)
class RecordResult:
    """Outcome of a successful mark-done.

    `completed` is the full updated record, `marked` the artifacts this call
    contributed (in declared order).
    """

    completed: set[str]
    marked: list[str]
    outcome: PersistOutcome


def mark_done(
    task: Task,
    params: Mapping[str, object],
    scope: str | None,
    store: CompletionStore,
) -> RecordResult | Rejected:
    if not (scope or "").strip():
        return Rejected(reason=REJECT_NO_SCOPE)

    produces = resolve_produces(task, params)
    if not produces:
        return Rejected(reason=REJECT_NOTHING_PRODUCIBLE)

    completed = store.load(scope)
    completed.update(produces)
    outcome = store.save(scope, completed)

    logger.info(
        "Task marked done",
        extra={"task_id": task.id, "scope": scope, "artifacts": produces, "persisted": outcome.ok},
    )
    return RecordResult(completed=completed, marked=produces, outcome=outcome)
