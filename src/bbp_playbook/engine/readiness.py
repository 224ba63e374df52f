"""Readiness evaluation.

A task is ready when every one of its substituted required artifacts is in
the completion record of the active scope. Verdicts are computed fresh on
every call and never cached.
"""

from __future__ import annotations

from collections.abc import Mapping, Set
from dataclasses import dataclass

from bbp_playbook.engine.model import Task
from bbp_playbook.engine.placeholders import substitute_all


@dataclass(frozen=True, slots=True)
class ReadinessVerdict:
    """Required artifacts for a task and the ones not yet recorded.

    `missing` keeps the declared order and is not deduplicated.
    """

    requires: list[str]
    missing: list[str]

    @property
    def ready(self) -> bool:
        return not self.missing


def evaluate(task: Task, params: Mapping[str, object], completed: Set[str]) -> ReadinessVerdict:
    requires = substitute_all(task.requires_files, params)
    missing = [artifact for artifact in requires if artifact not in completed]
    return ReadinessVerdict(requires=requires, missing=missing)


def resolve_produces(task: Task, params: Mapping[str, object]) -> list[str]:
    return substitute_all(task.produces_files, params)
