"""Unit tests for readiness evaluation."""

from __future__ import annotations

from bbp_playbook.engine.model import Playbook, playbook_from_mapping
from bbp_playbook.engine.placeholders import resolve
from bbp_playbook.engine.readiness import evaluate, resolve_produces


def test_task_without_requirements_is_ready(playbook: Playbook) -> None:
    recon = playbook.get_task("recon")
    assert recon is not None

    verdict = evaluate(recon, resolve({}, {"domain": "example.com"}), set())

    assert verdict.ready
    assert verdict.requires == []
    assert verdict.missing == []


def test_missing_requirement_blocks(playbook: Playbook) -> None:
    scan = playbook.get_task("scan")
    assert scan is not None

    verdict = evaluate(scan, resolve({}, {"domain": "example.com"}), set())

    assert not verdict.ready
    assert verdict.missing == ["./out/example_com/hosts.txt"]


def test_recorded_requirement_unblocks(playbook: Playbook) -> None:
    scan = playbook.get_task("scan")
    assert scan is not None

    verdict = evaluate(
        scan, resolve({}, {"domain": "example.com"}), {"./out/example_com/hosts.txt"}
    )

    assert verdict.ready
    assert verdict.requires == ["./out/example_com/hosts.txt"]


def test_artifacts_compare_by_substituted_string(playbook: Playbook) -> None:
    scan = playbook.get_task("scan")
    assert scan is not None

    verdict = evaluate(
        scan, resolve({}, {"domain": "other.com"}), {"./out/example_com/hosts.txt"}
    )

    assert verdict.missing == ["./out/other_com/hosts.txt"]


def test_duplicate_requirements_are_not_deduplicated() -> None:
    playbook = playbook_from_mapping(
        {"tasks": [{"id": "t", "requires_files": ["{outdir}/a.txt", "{outdir}/a.txt"]}]}
    )
    verdict = evaluate(playbook.tasks[0], resolve({}, {"domain": "example.com"}), set())

    assert verdict.missing == ["./out/example_com/a.txt", "./out/example_com/a.txt"]
    assert len(verdict.missing) == 2


def test_missing_preserves_declared_order() -> None:
    playbook = playbook_from_mapping(
        {"tasks": [{"id": "t", "requires_files": ["c", "a", "b"]}]}
    )
    verdict = evaluate(playbook.tasks[0], {}, {"a"})

    assert verdict.missing == ["c", "b"]


def test_resolve_produces(playbook: Playbook) -> None:
    recon = playbook.get_task("recon")
    assert recon is not None
    assert resolve_produces(recon, resolve({}, {"domain": "example.com"})) == [
        "./out/example_com/hosts.txt"
    ]
