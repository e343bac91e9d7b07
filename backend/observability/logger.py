"""
JSONL event logger.

- One JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Mapping, Callable


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_enabled: bool = True

LEVELS: dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}
_min_level: int = LEVELS["INFO"]


def configure(*, enabled: bool, level: str = "INFO") -> None:
    """
    Turn JSONL output on or off (ENABLE_JSON_LOGS) and set the minimum
    level (LOG_LEVEL). Unknown level names fall back to INFO.
    """
    global _enabled, _min_level  # pylint: disable=global-statement
    _enabled = enabled
    _min_level = LEVELS.get(level.upper(), LEVELS["INFO"])


def now_ms() -> int:
    """Wall-clock milliseconds for log correlation."""
    return time.time_ns() // 1_000_000


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    The caller supplies the event dict; ts_ms is filled in when absent.
    An optional "level" key (default INFO) is compared against the
    configured minimum; lower levels are dropped.

    This function:
    - Serializes to JSON (non-serializable values fall back to str())
    - Writes exactly one line
    - Never raises
    """
    if not _enabled:
        return
    if LEVELS.get(str(event.get("level", "INFO")).upper(), LEVELS["INFO"]) < _min_level:
        return

    payload = dict(event)
    payload.setdefault("ts_ms", now_ms())

    try:
        line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)
    except (TypeError, ValueError) as e:
        # Logging must never crash the controller
        fallback: dict[str, Any] = {
            "ts_ms": payload.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
