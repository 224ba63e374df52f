"""Text rendering shared by the CLI and the HTTP API."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from bbp_playbook.engine.model import Task
from bbp_playbook.engine.placeholders import OUTDIR_PARAM
from bbp_playbook.engine.readiness import ReadinessVerdict, resolve_produces

EMPTY = "—"
SEPARATOR = " • "


def task_label(task: Task) -> str:
    phase = f"[{task.phase}] " if task.phase else ""
    return f"{phase}{task.display_name}"


def mode_label(mode: str) -> str:
    return mode[:1].upper() + mode[1:]


def collapse_outdir(path: str, outdir: object) -> str:
    """Show the derived output directory as `{outdir}` again."""
    if not outdir:
        return path
    return path.replace(str(outdir), "{" + OUTDIR_PARAM + "}", 1)


def _join(items: Iterable[str]) -> str:
    return ", ".join(items) or EMPTY


def describe_task(task: Task, params: Mapping[str, object], verdict: ReadinessVerdict) -> str:
    """One-line summary: phase, tags, required and produced artifacts."""
    outdir = params.get(OUTDIR_PARAM)
    requires = [collapse_outdir(r, outdir) for r in verdict.requires]
    produces = [collapse_outdir(p, outdir) for p in resolve_produces(task, params)]
    parts = [
        f"Phase: {task.phase or EMPTY}",
        f"Tags: {_join(task.tags)}",
        f"Requires: {_join(requires)}",
        f"Produces: {_join(produces)}",
    ]
    return SEPARATOR.join(parts)


def blocked_message(missing: Iterable[str]) -> str:
    return (
        "Blocked (strict): missing required outputs. "
        f"Mark these as done first: {', '.join(missing)}"
    )


def join_commands(commands: Iterable[str]) -> str:
    """Newline-joined export of every command, ready to paste into a shell."""
    return "\n".join(commands)
