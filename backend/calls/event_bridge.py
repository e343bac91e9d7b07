"""
Call event bridge.

The same call change can arrive twice: once from the widget (SDK event)
and once from the provider webhook. Events are keyed by
`type:call_id:second` and dropped when the key was seen recently.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from observability.logger import log_event, now_ms
from spec import CALL_EVENT_CACHE_MAX, CALL_EVENT_DEDUP_WINDOW_MS


WEBHOOK_TO_SDK_EVENT: dict[str, str] = {
    "call.created": "incoming_call",
    "call.ringing": "incoming_call",
    "call.answered": "outgoing_answered",
    "call.hungup": "call_ended",
    "call.ended": "call_ended",
    "call.missed": "call_end_ringtone",
}

SDK_TO_WEBHOOK_EVENT: dict[str, str] = {
    "incoming_call": "call.created",
    "call_end_ringtone": "call.missed",
    "outgoing_call": "call.created",
    "outgoing_answered": "call.answered",
    "call_ended": "call.ended",
    "comment_saved": "comment.created",
    "external_dial": "call.dial",
    "powerdialer_updated": "powerdialer.updated",
    "redirect_event": "redirect.event",
}


@dataclass(frozen=True)
class ProcessedEvent:
    key: str
    event_type: str
    seen_at_ms: int
    source: str  # "webhook" | "sdk"


def event_key(event_type: str, call_id: str, ts_ms: int) -> str:
    return f"{event_type}:{call_id}:{ts_ms // 1000}"


class CallEventBridge:

    def __init__(
        self,
        *,
        window_ms: int = CALL_EVENT_DEDUP_WINDOW_MS,
        max_entries: int = CALL_EVENT_CACHE_MAX,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._window_ms = window_ms
        self._max_entries = max_entries
        self._clock = clock
        self._processed: dict[str, ProcessedEvent] = {}

    def process_webhook_event(self, event_type: str, call_id: str, ts_ms: int | None = None) -> bool:
        """
        True if the event is new and should be handled.

        Webhook types are keyed under their SDK equivalent so the same call
        change reported by both sources is handled once.
        """
        keyed_type = WEBHOOK_TO_SDK_EVENT.get(event_type, event_type)
        return self._process(keyed_type, call_id, ts_ms, "webhook")

    def process_sdk_event(self, event_type: str, call_id: str, ts_ms: int | None = None) -> bool:
        """True if the event is new and should be handled."""
        return self._process(event_type, call_id, ts_ms, "sdk")

    def _process(self, event_type: str, call_id: str, ts_ms: int | None, source: str) -> bool:
        ts = self._clock() if ts_ms is None else ts_ms
        key = event_key(event_type, call_id or "unknown", ts)

        if key in self._processed:
            log_event({
                "event_type": "call_event_duplicate",
                "source": source,
                "key": key,
            })
            return False

        self._processed[key] = ProcessedEvent(
            key=key,
            event_type=event_type,
            seen_at_ms=self._clock(),
            source=source,
        )
        if len(self._processed) > self._max_entries:
            self._evict_expired()
        return True

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [
            key for key, ev in self._processed.items()
            if now - ev.seen_at_ms > self._window_ms
        ]
        for key in expired:
            del self._processed[key]

    def stats(self) -> dict[str, int]:
        webhook = sum(1 for ev in self._processed.values() if ev.source == "webhook")
        return {
            "total_processed": len(self._processed),
            "webhook_events": webhook,
            "sdk_events": len(self._processed) - webhook,
            "cache_size": len(self._processed),
        }

    def clear(self) -> None:
        self._processed.clear()


def webhook_to_sdk_event(webhook_type: str) -> str | None:
    return WEBHOOK_TO_SDK_EVENT.get(webhook_type)


def sdk_to_webhook_event(sdk_type: str) -> str | None:
    return SDK_TO_WEBHOOK_EVENT.get(sdk_type)
