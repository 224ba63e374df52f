"""Test configuration and fixtures."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from bbp_playbook.engine.completion_store import CompletionStore, JsonFileBackend, MemoryBackend
from bbp_playbook.engine.model import Playbook, playbook_from_mapping
from bbp_playbook.engine.service import PlaybookEngine


@pytest.fixture
def playbook_data() -> dict[str, object]:
    """Provide a small recon -> scan playbook document."""
    return {
        "placeholders": {"domain": "default.test", "url": "https://default.test"},
        "tasks": [
            {
                "id": "recon",
                "name": "Recon",
                "phase": "1",
                "tags": ["recon"],
                "notes": ["Passive only."],
                "requires_files": [],
                "produces_files": ["{outdir}/hosts.txt"],
                "modes": {
                    "default": {
                        "commands": [
                            {"cmd": "mkdir -p {outdir}"},
                            {"cmd": "subfinder -d {domain} -o {outdir}/hosts.txt"},
                        ]
                    },
                    "thorough": {"commands": [{"cmd": "amass enum -d {domain}"}]},
                },
            },
            {
                "id": "scan",
                "name": "Scan",
                "phase": "2",
                "requires_files": ["{outdir}/hosts.txt"],
                "produces_files": ["{outdir}/scan.txt"],
                "modes": {
                    "default": {
                        "commands": [{"cmd": "nmap -iL {outdir}/hosts.txt -oN {outdir}/scan.txt"}]
                    }
                },
            },
            {
                "id": "notes-only",
                "name": "Read the scope",
                "modes": {"default": {"commands": [{"cmd": "echo {url}"}]}},
            },
        ],
    }


@pytest.fixture
def playbook(playbook_data: dict[str, object]) -> Playbook:
    return playbook_from_mapping(playbook_data)


@pytest.fixture
def store() -> CompletionStore:
    """Provide an in-memory completion store."""
    return CompletionStore(MemoryBackend())


@pytest.fixture
def engine(store: CompletionStore, playbook_data: dict[str, object]) -> PlaybookEngine:
    """Provide an engine with the test playbook loaded."""
    engine = PlaybookEngine(store)
    engine.load_catalogue(playbook_data)
    return engine


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    return tmp_path / "agent_state" / "completed_files.json"


@pytest.fixture
def file_store(state_file: Path) -> CompletionStore:
    return CompletionStore(JsonFileBackend(state_file))


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """Undo `configure_logging` side effects on the root logger."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
