"""
Persisted key/value state for the phone integration.

Two stores are used:
- local store: survives restarts (workspace visibility, connection
  metadata, last reconnect attempt)
- session store: cleared with the session (opt-out)

Writes are fire-and-forget and last-write-wins. A failing write is logged
and never raised.
"""

from __future__ import annotations

import json
from pathlib import Path

from observability.logger import log_event
from spec import (
    KEY_CONNECTION_ATTEMPTS,
    KEY_CONNECTION_TIMESTAMP,
    KEY_LAST_RECONNECT_ATTEMPT,
    KEY_OPTED_OUT,
    KEY_WORKSPACE_VISIBLE,
    RECENT_CONNECTION_WINDOW_MS,
)
from orchestrator.runtime_context import KeyValueStore


# ---------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------

class InMemoryStore:
    """Dict-backed KeyValueStore. Used for the session store and in tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class JsonFileStore:
    """
    KeyValueStore persisted to a single JSON file.

    The file is read once on construction and rewritten on every change.
    A missing or corrupt file starts empty.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            log_event({
                "event_type": "STORE_LOAD_FAILED",
                "path": str(self._path),
                "error": str(exc),
            })
            return {}

        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def _flush(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(self._data, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            log_event({
                "event_type": "STORE_WRITE_FAILED",
                "path": str(self._path),
                "error": str(exc),
            })

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _read_int(store: KeyValueStore, key: str) -> int | None:
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def persist_connection_metadata(store: KeyValueStore, *, now_ms: int, attempts: int) -> None:
    store.set(KEY_CONNECTION_TIMESTAMP, str(now_ms))
    store.set(KEY_CONNECTION_ATTEMPTS, str(attempts))


def clear_connection_metadata(store: KeyValueStore) -> None:
    store.remove(KEY_CONNECTION_TIMESTAMP)
    store.remove(KEY_CONNECTION_ATTEMPTS)


def connection_timestamp(store: KeyValueStore) -> int | None:
    return _read_int(store, KEY_CONNECTION_TIMESTAMP)


def has_recent_connection(
    store: KeyValueStore,
    *,
    now_ms: int,
    window_ms: int = RECENT_CONNECTION_WINDOW_MS,
) -> bool:
    """True when a connection was persisted less than window_ms ago."""
    ts = connection_timestamp(store)
    if ts is None:
        return False
    return 0 <= now_ms - ts < window_ms


def record_reconnect_attempt(store: KeyValueStore, *, now_ms: int) -> None:
    store.set(KEY_LAST_RECONNECT_ATTEMPT, str(now_ms))


def last_reconnect_attempt(store: KeyValueStore) -> int | None:
    return _read_int(store, KEY_LAST_RECONNECT_ATTEMPT)


def set_workspace_visible(store: KeyValueStore, visible: bool) -> None:
    store.set(KEY_WORKSPACE_VISIBLE, "true" if visible else "false")


def workspace_visible_preference(store: KeyValueStore) -> bool | None:
    raw = store.get(KEY_WORKSPACE_VISIBLE)
    if raw is None:
        return None
    return raw == "true"


def set_opted_out(store: KeyValueStore, opted_out: bool) -> None:
    if opted_out:
        store.set(KEY_OPTED_OUT, "true")
    else:
        store.remove(KEY_OPTED_OUT)


def is_opted_out(store: KeyValueStore) -> bool:
    return store.get(KEY_OPTED_OUT) == "true"
