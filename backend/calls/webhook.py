"""
Provider webhook ingestion for call events.

Payload shape (subset used here):
    {
      "event": "call.answered",
      "timestamp": 1700000000,
      "data": {
        "id": 812,
        "direction": "inbound",
        "status": "answered",
        "started_at": 1700000000,
        "ended_at": null,
        "duration": 0,
        "raw_digits": "+33 1 00 00 00 00",
        "number": {"digits": "+33 2 00 00 00 00"}
      }
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from calls.event_bridge import CallEventBridge
from observability.logger import log_event
from orchestrator.enums.call import CallDirection, CallStatus
from orchestrator.runtime_context import CallRecordStore


# Provider status -> stored status
WEBHOOK_STATUS_MAP: dict[str, CallStatus] = {
    "initial": CallStatus.RINGING,
    "ringing": CallStatus.RINGING,
    "answered": CallStatus.ANSWERED,
    "ongoing": CallStatus.ONGOING,
    "hungup": CallStatus.COMPLETED,
    "done": CallStatus.COMPLETED,
    "missed": CallStatus.MISSED,
    "busy": CallStatus.BUSY,
    "failed": CallStatus.FAILED,
    "transferred": CallStatus.TRANSFERRED,
    "hold": CallStatus.ON_HOLD,
}

# Event type wins over the payload status when both are present
WEBHOOK_EVENT_STATUS: dict[str, CallStatus] = {
    "call.created": CallStatus.RINGING,
    "call.ringing_on_agent": CallStatus.RINGING,
    "call.answered": CallStatus.ANSWERED,
    "call.hungup": CallStatus.COMPLETED,
    "call.ended": CallStatus.COMPLETED,
    "call.missed": CallStatus.MISSED,
    "call.transferred": CallStatus.TRANSFERRED,
    "call.hold": CallStatus.ON_HOLD,
    "call.unhold": CallStatus.ONGOING,
}


class InvalidWebhookError(ValueError):
    """Payload is missing the event type or call id."""


@dataclass(frozen=True)
class WebhookResult:
    outcome: str  # "stored" | "duplicate" | "skipped"
    external_id: str
    status: CallStatus | None = None


def map_webhook_status(event_type: str, raw_status: str | None) -> CallStatus:
    if event_type in WEBHOOK_EVENT_STATUS:
        return WEBHOOK_EVENT_STATUS[event_type]
    if raw_status:
        return WEBHOOK_STATUS_MAP.get(raw_status.lower(), CallStatus.RINGING)
    return CallStatus.RINGING


def _iso(epoch_s: Any) -> str | None:
    if epoch_s in (None, "", 0):
        return None
    try:
        return datetime.fromtimestamp(float(epoch_s), tz=timezone.utc).isoformat()
    except (TypeError, ValueError, OverflowError):
        return None


def _ts_ms(payload: Mapping[str, Any]) -> int | None:
    ts = payload.get("timestamp")
    if ts is None:
        return None
    if isinstance(ts, (int, float)):
        # epoch seconds
        return int(ts * 1000)
    try:
        return int(datetime.fromisoformat(str(ts).replace("Z", "+00:00")).timestamp() * 1000)
    except ValueError:
        return None


def normalize_webhook(payload: Mapping[str, Any], *, organization_id: str) -> dict[str, Any]:
    event_type = payload.get("event") or payload.get("type")
    data = payload.get("data") or {}
    call_id = data.get("id", data.get("call_id"))
    if not event_type or call_id is None:
        raise InvalidWebhookError("webhook payload needs an event type and data.id")

    direction = data.get("direction") or CallDirection.INBOUND.value
    if direction not in (CallDirection.INBOUND.value, CallDirection.OUTBOUND.value):
        direction = CallDirection.INBOUND.value

    number = data.get("number") or {}
    record: dict[str, Any] = {
        "external_id": str(call_id),
        "organization_id": organization_id,
        "direction": direction,
        "status": map_webhook_status(str(event_type), data.get("status")).value,
        "customer_phone": data.get("raw_digits") or "",
        "agent_phone": number.get("digits") or "",
        "metadata": {"event": event_type, "data": dict(data)},
    }

    started_at = _iso(data.get("started_at"))
    if started_at:
        record["started_at"] = started_at
    ended_at = _iso(data.get("ended_at"))
    if ended_at:
        record["ended_at"] = ended_at
    if data.get("duration") is not None:
        record["duration_seconds"] = data.get("duration")

    return record


def ingest_webhook(
    payload: Mapping[str, Any],
    *,
    store: CallRecordStore,
    bridge: CallEventBridge,
    organization_id: str | None,
) -> WebhookResult:
    """
    Deduplicate against SDK events, normalize and upsert.

    Raises InvalidWebhookError on malformed payloads.
    """
    record = normalize_webhook(payload, organization_id=organization_id or "")
    event_type = str(payload.get("event") or payload.get("type"))
    external_id = record["external_id"]

    if not organization_id:
        log_event({
            "event_type": "webhook_skipped",
            "reason": "missing_organization_id",
            "external_id": external_id,
        })
        return WebhookResult(outcome="skipped", external_id=external_id)

    if not bridge.process_webhook_event(event_type, external_id, _ts_ms(payload)):
        return WebhookResult(outcome="duplicate", external_id=external_id)

    store.upsert(record)
    status = CallStatus(record["status"])
    log_event({
        "event_type": "webhook_stored",
        "webhook_event": event_type,
        "external_id": external_id,
        "status": status.value,
    })
    return WebhookResult(outcome="stored", external_id=external_id, status=status)
