"""Playbook REST API.

All routes are mounted under `/api`.

Status codes:
- 404: unknown task or mode
- 409: blocked on missing prerequisite artifacts (`detail.missing` lists them)
- 422: mark-done rejected
- 503: playbook not loaded
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request

from bbp_playbook import __version__
from bbp_playbook.engine.commands import Blocked, SelectionError
from bbp_playbook.engine.completion_store import Degraded
from bbp_playbook.engine.readiness import ReadinessVerdict
from bbp_playbook.engine.recorder import Rejected
from bbp_playbook.engine.render import (
    blocked_message,
    describe_task,
    join_commands,
    mode_label,
    task_label,
)
from bbp_playbook.engine.service import NotLoaded, PlaybookEngine
from bbp_playbook.server.models import (
    ApiCommands,
    ApiDone,
    ApiMode,
    ApiReadiness,
    ApiReset,
    ApiTask,
    GenerateRequest,
    ParamsRequest,
)

router = APIRouter()


def _engine(request: Request) -> PlaybookEngine:
    engine = getattr(request.app.state, "engine", None)
    if not isinstance(engine, PlaybookEngine):
        raise HTTPException(status_code=500, detail="Engine not configured")
    return engine


def _loaded_engine(request: Request) -> PlaybookEngine:
    engine = _engine(request)
    if not engine.loaded:
        error = getattr(request.app.state, "load_error", None) or "Playbook not loaded"
        raise HTTPException(status_code=503, detail=error)
    return engine


def _not_found(e: SelectionError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


def _verdict(result: ReadinessVerdict | NotLoaded) -> ReadinessVerdict:
    if isinstance(result, NotLoaded):
        raise HTTPException(status_code=503, detail="Playbook not loaded")
    return result


@router.get("/health")
def health(request: Request) -> dict[str, object]:
    engine = _engine(request)
    return {
        "status": "ok",
        "version": __version__,
        "playbookLoaded": engine.loaded,
        "tasks": len(engine.list_tasks()),
    }


@router.get("/tasks", response_model=list[ApiTask])
def list_tasks(
    request: Request,
    domain: str = Query(default=""),
    url: str = Query(default=""),
    scope: str | None = Query(default=None),
) -> list[ApiTask]:
    engine = _loaded_engine(request)
    params = {"domain": domain, "url": url}
    out: list[ApiTask] = []
    for task in engine.list_tasks():
        verdict = _verdict(engine.evaluate_readiness(task.id, params, scope))
        out.append(
            ApiTask(
                id=task.id,
                label=task_label(task),
                name=task.display_name,
                phase=task.phase,
                tags=task.tags,
                notes=task.notes,
                modes=engine.list_modes(task.id),
                ready=verdict.ready,
                missing=verdict.missing,
            )
        )
    return out


@router.get("/tasks/{task_id}/modes", response_model=list[ApiMode])
def list_modes(request: Request, task_id: str) -> list[ApiMode]:
    engine = _loaded_engine(request)
    try:
        modes = engine.list_modes(task_id)
    except SelectionError as e:
        raise _not_found(e) from e
    return [ApiMode(name=m, label=mode_label(m)) for m in modes]


@router.post("/readiness", response_model=ApiReadiness)
def readiness(request: Request, req: ParamsRequest) -> ApiReadiness:
    engine = _loaded_engine(request)
    try:
        task = engine.get_task(req.task_id)
        verdict = _verdict(engine.evaluate_readiness(req.task_id, req.params, req.scope))
    except SelectionError as e:
        raise _not_found(e) from e

    return ApiReadiness(
        task_id=task.id,
        ready=verdict.ready,
        requires=verdict.requires,
        missing=verdict.missing,
        summary=describe_task(task, engine.resolve_params(req.params), verdict),
        message="Ready." if verdict.ready else blocked_message(verdict.missing),
    )


@router.post("/generate", response_model=ApiCommands)
def generate(request: Request, req: GenerateRequest) -> ApiCommands:
    engine = _loaded_engine(request)
    try:
        result = engine.generate_commands(req.task_id, req.mode, req.params, req.scope)
    except SelectionError as e:
        raise _not_found(e) from e

    if isinstance(result, NotLoaded):
        raise HTTPException(status_code=503, detail="Playbook not loaded")
    if isinstance(result, Blocked):
        raise HTTPException(
            status_code=409,
            detail={"message": blocked_message(result.missing), "missing": result.missing},
        )

    return ApiCommands(
        task_id=result.task_id,
        mode=result.mode,
        commands=result.commands,
        text=join_commands(result.commands),
    )


@router.post("/done", response_model=ApiDone)
def mark_done(request: Request, req: ParamsRequest) -> ApiDone:
    engine = _loaded_engine(request)
    try:
        result = engine.mark_task_done(req.task_id, req.params, req.scope)
    except SelectionError as e:
        raise _not_found(e) from e

    if isinstance(result, Rejected):
        raise HTTPException(status_code=422, detail=result.reason)

    return ApiDone(
        task_id=req.task_id,
        scope=engine.scope_for(req.params, req.scope),
        marked=result.marked,
        completed=sorted(result.completed),
        persisted=result.outcome.ok,
        warning=result.outcome.reason if isinstance(result.outcome, Degraded) else None,
    )


@router.delete("/scopes/{scope}", response_model=ApiReset)
def reset_scope(request: Request, scope: str) -> ApiReset:
    engine = _engine(request)
    outcome = engine.reset_scope(scope)
    return ApiReset(
        scope=scope,
        persisted=outcome.ok,
        warning=outcome.reason if isinstance(outcome, Degraded) else None,
    )
