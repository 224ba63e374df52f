"""Per-scope persistence of completed artifact identifiers.

The store is best-effort: a corrupt or unreadable record loads as empty, and a
failed write is reported as `Degraded` rather than raised. Losing bookkeeping
must never stop the operator from re-running work.

Keys are `<STORAGE_PREFIX>:<lower-cased scope>`; the value is a JSON array of
artifact identifiers.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "bbp_completed_files_v1"
DEFAULT_SCOPE = "default"


def storage_key(scope: str | None) -> str:
    normalized = (scope or "").strip().lower() or DEFAULT_SCOPE
    return f"{STORAGE_PREFIX}:{normalized}"


@dataclass(frozen=True, slots=True)
class Persisted:
    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Degraded:
    """A write that did not reach the backend."""

    reason: str

    @property
    def ok(self) -> bool:
        return False


PersistOutcome = Persisted | Degraded


class KeyValueBackend(Protocol):
    """Scoped key-value storage of string sequences."""

    def get(self, key: str) -> object | None: ...

    def set(self, key: str, value: list[str]) -> None: ...  # noqa: A003

    def delete(self, key: str) -> None: ...


class MemoryBackend:
    """In-process backend; contents live as long as the object."""

    def __init__(self) -> None:
        self._data: dict[str, list[str]] = {}

    def get(self, key: str) -> object | None:
        value = self._data.get(key)
        return list(value) if isinstance(value, list) else value

    def set(self, key: str, value: list[str]) -> None:  # noqa: A003
        self._data[key] = list(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileBackend:
    """Single JSON file holding an object of key -> list of strings.

    The lock serialises read-modify-write when the HTTP server runs handlers
    on worker threads.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _read_unlocked(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Completion state file is not a JSON object: {self.path}")
        return raw

    def _write_unlocked(self, data: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(data, indent=2, ensure_ascii=False, sort_keys=True) + "\n",
            encoding="utf-8",
        )

    def get(self, key: str) -> object | None:
        with self._lock:
            return self._read_unlocked().get(key)

    def set(self, key: str, value: list[str]) -> None:  # noqa: A003
        with self._lock:
            try:
                data = self._read_unlocked()
            except (json.JSONDecodeError, ValueError):
                logger.warning(
                    "Completion state file is corrupt; rewriting it",
                    extra={"path": str(self.path)},
                )
                data = {}
            data[key] = list(value)
            self._write_unlocked(data)

    def delete(self, key: str) -> None:
        with self._lock:
            try:
                data = self._read_unlocked()
            except (json.JSONDecodeError, ValueError):
                data = {}
            if key in data:
                del data[key]
                self._write_unlocked(data)


class CompletionStore:
    """Load, save and reset the completion record of a scope."""

    def __init__(self, backend: KeyValueBackend) -> None:
        """Initialize the store.

        Args:
            backend: Where records are persisted.
        """
        self.backend = backend

    def load(self, scope: str | None) -> set[str]:
        """Load the completion record for `scope`.

        Returns:
            The recorded artifact identifiers; empty when nothing (or nothing
            readable) is stored.
        """
        key = storage_key(scope)
        try:
            raw = self.backend.get(key)
        except Exception as e:
            logger.warning(
                "Failed to read completion record; treating as empty",
                extra={"key": key, "error": str(e)},
            )
            return set()

        if raw is None:
            return set()

        if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
            logger.warning(
                "Completion record has unexpected shape; treating as empty",
                extra={"key": key},
            )
            return set()

        return set(raw)

    def save(self, scope: str | None, artifacts: Iterable[str]) -> PersistOutcome:
        """Persist `artifacts` as the completion record for `scope`."""
        key = storage_key(scope)
        try:
            self.backend.set(key, sorted(set(artifacts)))
        except Exception as e:
            logger.warning(
                "Failed to persist completion record",
                extra={"key": key, "error": str(e)},
            )
            return Degraded(reason=str(e))

        logger.debug("Completion record saved", extra={"key": key})
        return Persisted()

    def reset(self, scope: str | None) -> PersistOutcome:
        """Delete the completion record for `scope`."""
        key = storage_key(scope)
        try:
            self.backend.delete(key)
        except Exception as e:
            logger.warning(
                "Failed to reset completion record",
                extra={"key": key, "error": str(e)},
            )
            return Degraded(reason=str(e))

        logger.info("Completion record reset", extra={"key": key})
        return Persisted()
