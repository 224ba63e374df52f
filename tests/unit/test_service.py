"""Unit tests for the engine facade and explicit sessions.

These walk the recon -> scan feedback loop end to end: marking recon done
unlocks scan, and resetting the scope locks it again.
"""

from __future__ import annotations

import pytest

from bbp_playbook.engine.commands import (
    Blocked,
    GeneratedCommands,
    UnknownModeError,
    UnknownTaskError,
)
from bbp_playbook.engine.completion_store import (
    DEFAULT_SCOPE,
    STORAGE_PREFIX,
    CompletionStore,
    MemoryBackend,
)
from bbp_playbook.engine.model import PlaybookLoadError
from bbp_playbook.engine.readiness import ReadinessVerdict
from bbp_playbook.engine.recorder import REJECT_NO_SCOPE, RecordResult, Rejected
from bbp_playbook.engine.service import (
    NOT_LOADED,
    REJECT_NOT_LOADED,
    PlaybookEngine,
    open_session,
    select_mode,
    select_task,
    session_mark_done,
    session_readiness,
    session_reset,
    set_param,
    switch_scope,
)

HOSTS = "./out/example_com/hosts.txt"


def _ready(result: object) -> bool:
    assert isinstance(result, ReadinessVerdict)
    return result.ready


def test_scenario_recon_ready_generate_and_mark_done(
    engine: PlaybookEngine, store: CompletionStore
) -> None:
    params = {"domain": "example.com"}

    assert _ready(engine.evaluate_readiness("recon", params, "example.com"))

    result = engine.generate_commands("recon", "default", params)
    assert isinstance(result, GeneratedCommands)
    assert result.commands == [
        "mkdir -p ./out/example_com",
        f"subfinder -d example.com -o {HOSTS}",
    ]

    done = engine.mark_task_done("recon", params, "example.com")
    assert isinstance(done, RecordResult)
    assert HOSTS in store.load("example.com")


def test_scenario_scan_blocked_until_recon_done(engine: PlaybookEngine) -> None:
    params = {"domain": "example.com"}

    verdict = engine.evaluate_readiness("scan", params, "example.com")
    assert isinstance(verdict, ReadinessVerdict)
    assert not verdict.ready
    assert verdict.missing == [HOSTS]

    engine.mark_task_done("recon", params, "example.com")

    assert _ready(engine.evaluate_readiness("scan", params, "example.com"))


def test_scenario_duplicate_requirements(store: CompletionStore) -> None:
    engine = PlaybookEngine(store)
    engine.load_catalogue(
        {"tasks": [{"id": "t", "requires_files": ["{outdir}/a.txt", "{outdir}/a.txt"]}]}
    )

    verdict = engine.evaluate_readiness("t", {"domain": "example.com"}, "example.com")

    assert isinstance(verdict, ReadinessVerdict)
    assert len(verdict.missing) == 2


def test_generation_gating_matches_readiness(engine: PlaybookEngine) -> None:
    params = {"domain": "example.com"}

    verdict = engine.evaluate_readiness("scan", params, "example.com")
    result = engine.generate_commands("scan", "default", params, "example.com")

    assert isinstance(verdict, ReadinessVerdict) and not verdict.ready
    assert isinstance(result, Blocked)
    assert result.missing == verdict.missing


def test_readiness_stays_monotonic_until_reset(engine: PlaybookEngine) -> None:
    params = {"domain": "example.com"}
    engine.mark_task_done("recon", params, "example.com")

    for _ in range(3):
        assert _ready(engine.evaluate_readiness("scan", params, "example.com"))
        engine.mark_task_done("recon", params, "example.com")

    assert engine.reset_scope("example.com").ok

    assert not _ready(engine.evaluate_readiness("scan", params, "example.com"))
    assert _ready(engine.evaluate_readiness("recon", params, "example.com"))


def test_scope_defaults_to_caller_domain(engine: PlaybookEngine, store: CompletionStore) -> None:
    engine.mark_task_done("recon", {"domain": "example.com"})

    assert store.load("EXAMPLE.com") == {HOSTS}
    assert _ready(engine.evaluate_readiness("scan", {"domain": "example.com"}))


def test_explicit_scope_wins_over_domain(engine: PlaybookEngine, store: CompletionStore) -> None:
    engine.mark_task_done("recon", {"domain": "example.com"}, "engagement-42")

    assert store.load("engagement-42") == {HOSTS}
    assert store.load("example.com") == set()


def test_scope_for() -> None:
    engine = PlaybookEngine(CompletionStore(MemoryBackend()))
    assert engine.scope_for({"domain": "a.test"}) == "a.test"
    assert engine.scope_for({"domain": "a.test"}, "  b.test ") == "b.test"
    assert engine.scope_for({}) == ""
    assert engine.scope_for(None) == ""
    assert engine.scope_for({"domain": "  "}) == ""
    assert engine.scope_for({"domain": "a.test"}, "  ") == ""


def test_mark_done_without_caller_scope_is_rejected(
    engine: PlaybookEngine, store: CompletionStore
) -> None:
    # The catalogue's default domain never stands in for a missing scope.
    rejected = Rejected(reason=REJECT_NO_SCOPE)
    assert engine.mark_task_done("recon", {}, "") == rejected
    assert engine.mark_task_done("recon", {}) == rejected
    assert engine.mark_task_done("recon", {"domain": ""}) == rejected
    assert engine.mark_task_done("recon", {"domain": "example.com"}, "  ") == rejected

    assert store.load("default.test") == set()
    assert store.load("") == set()


def test_blank_scope_reads_the_default_record(
    engine: PlaybookEngine, store: CompletionStore
) -> None:
    default_hosts = "./out/default_test/hosts.txt"

    store.save("default.test", {default_hosts})
    assert not _ready(engine.evaluate_readiness("scan", {}))

    store.save("", {default_hosts})
    assert store.backend.get(f"{STORAGE_PREFIX}:{DEFAULT_SCOPE}") == [default_hosts]

    assert _ready(engine.evaluate_readiness("scan", {}))
    assert _ready(engine.evaluate_readiness("scan", {"domain": "  "}, ""))
    result = engine.generate_commands("scan", "default", {})
    assert isinstance(result, GeneratedCommands)
    assert result.commands == [
        "nmap -iL ./out/default_test/hosts.txt -oN ./out/default_test/scan.txt"
    ]


def test_resolve_params_uses_catalogue_defaults(engine: PlaybookEngine) -> None:
    params = engine.resolve_params({"domain": "", "url": "https://x.test"})

    assert params["domain"] == "default.test"
    assert params["url"] == "https://x.test"
    assert params["outdir"] == "./out/default_test"


def test_selection_errors(engine: PlaybookEngine) -> None:
    with pytest.raises(UnknownTaskError):
        engine.list_modes("nope")
    with pytest.raises(UnknownTaskError):
        engine.evaluate_readiness("nope", {})
    with pytest.raises(UnknownModeError):
        engine.generate_commands("recon", "nope", {"domain": "example.com"})
    with pytest.raises(UnknownTaskError):
        engine.mark_task_done("nope", {"domain": "example.com"})


def test_list_tasks_and_modes(engine: PlaybookEngine) -> None:
    assert [t.id for t in engine.list_tasks()] == ["recon", "scan", "notes-only"]
    assert engine.list_modes("recon") == ["default", "thorough"]


def test_not_loaded_is_a_blocking_state() -> None:
    engine = PlaybookEngine(CompletionStore(MemoryBackend()))

    assert not engine.loaded
    assert engine.list_tasks() == []
    assert engine.list_modes("recon") == []
    assert engine.evaluate_readiness("recon", {}) is NOT_LOADED
    assert engine.generate_commands("recon", "default", {}) is NOT_LOADED
    assert engine.mark_task_done("recon", {"domain": "a.test"}) == Rejected(
        reason=REJECT_NOT_LOADED
    )


def test_failed_reload_keeps_previous_catalogue(engine: PlaybookEngine) -> None:
    with pytest.raises(PlaybookLoadError):
        engine.load_catalogue({"tasks": []})

    assert engine.loaded
    assert len(engine.list_tasks()) == 3


def test_session_switch_scope_reloads_cache(engine: PlaybookEngine, store: CompletionStore) -> None:
    session = open_session(engine, "example.com")
    assert session.task_id == "recon"
    assert session.mode == "default"
    assert session.completed == frozenset()

    # A write made outside the session is only seen after a scope switch.
    store.save("example.com", {HOSTS})
    assert session.completed == frozenset()

    session = switch_scope(engine, session, "other.com")
    assert session.completed == frozenset()
    session = switch_scope(engine, session, "example.com")
    assert session.completed == frozenset({HOSTS})

    session = select_task(engine, session, "scan")
    assert _ready(session_readiness(engine, session))


def test_session_mark_done_and_reset(engine: PlaybookEngine) -> None:
    session = open_session(engine, "example.com")

    session, result = session_mark_done(engine, session)
    assert isinstance(result, RecordResult)
    assert session.completed == frozenset({HOSTS})

    session = select_task(engine, session, "scan")
    assert _ready(session_readiness(engine, session))

    session, outcome = session_reset(engine, session)
    assert outcome.ok
    assert session.completed == frozenset()
    assert not _ready(session_readiness(engine, session))


def test_session_without_scope_cannot_mark_done(engine: PlaybookEngine) -> None:
    session = open_session(engine)

    session, result = session_mark_done(engine, session)

    assert result == Rejected(reason=REJECT_NO_SCOPE)
    assert session.completed == frozenset()


def test_session_select_mode_and_params(engine: PlaybookEngine) -> None:
    session = open_session(engine, "example.com")

    session = select_mode(engine, session, "thorough")
    assert session.mode == "thorough"
    with pytest.raises(UnknownModeError):
        select_mode(engine, session, "nope")

    session = set_param(session, "url", "https://example.com")
    assert session.overrides["url"] == "https://example.com"
    assert session.overrides["domain"] == "example.com"
