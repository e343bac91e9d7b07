# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger
from observability.metrics import timed


def test_log_event_emits_valid_jsonl(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - payload is serialized as-is (plus ts_ms when absent)
    - output sink is patchable
    """
    captured: list[str] = []

    def fake_print(line: str) -> None:
        captured.append(line)

    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", fake_print)

    payload: dict[str, Any] = {
        "ts_ms": 1000,
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    # Exactly one line emitted
    assert len(captured) == 1

    # Must be valid JSON, payload preserved exactly
    assert json.loads(captured[0]) == payload


def test_log_event_adds_timestamp_when_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)

    logger.log_event({"event_type": "TEST"})

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "TEST"
    assert isinstance(decoded["ts_ms"], int)


def test_log_event_never_raises_on_unserializable(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)

    logger.log_event({"event_type": "TEST", "obj": object()})

    assert len(captured) == 1
    assert json.loads(captured[0])["event_type"] == "TEST"


def test_disabled_logger_is_silent(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)
    monkeypatch.setattr(logger, "_enabled", False)

    logger.log_event({"event_type": "TEST"})

    assert captured == []


def test_events_below_configured_level_are_dropped(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)
    monkeypatch.setattr(logger, "_min_level", logger.LEVELS["INFO"])

    logger.log_event({"event_type": "NOISY", "level": "DEBUG"})
    logger.log_event({"event_type": "PLAIN"})
    logger.log_event({"event_type": "BAD", "level": "error"})

    assert [json.loads(line)["event_type"] for line in captured] == ["PLAIN", "BAD"]


def test_configure_applies_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_enabled", True)
    monkeypatch.setattr(logger, "_min_level", logger.LEVELS["INFO"])

    logger.configure(enabled=True, level="warning")
    assert logger._min_level == logger.LEVELS["WARNING"]  # pylint: disable=protected-access

    logger.configure(enabled=True, level="verbose")
    assert logger._min_level == logger.LEVELS["INFO"]  # pylint: disable=protected-access


def test_timed_emits_one_metric(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)

    with timed("sdk_initialize", controller_id="phone_test", phase="creating-workspace"):
        pass

    assert len(captured) == 1
    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "METRIC_TIMER"
    assert decoded["metric"] == "sdk_initialize"
    assert decoded["controller_id"] == "phone_test"
    assert decoded["value_ms"] >= 0
