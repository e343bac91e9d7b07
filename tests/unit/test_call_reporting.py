# pylint: disable=missing-module-docstring,missing-function-docstring
import pytest

from calls.event_bridge import (
    CallEventBridge,
    event_key,
    sdk_to_webhook_event,
    webhook_to_sdk_event,
)
from calls.record_store import InMemoryCallRecordStore
from calls.sync import CallSyncError, CallSyncService
from calls.webhook import InvalidWebhookError, ingest_webhook, map_webhook_status, normalize_webhook
from orchestrator.enums.call import CallDirection, CallStatus
from orchestrator.state_dataclass import CallRecord
from phone_fakes import ManualClock


def webhook(event: str = "call.answered", call_id: int = 812, **data) -> dict:
    body = {
        "id": call_id,
        "direction": "inbound",
        "status": "answered",
        "started_at": 1_700_000_000,
        "raw_digits": "+33 1 00 00 00 00",
        "number": {"digits": "+33 2 00 00 00 00"},
    }
    body.update(data)
    return {"event": event, "timestamp": 1_700_000_005, "data": body}


# ---------------------------------------------------------------------
# Event bridge
# ---------------------------------------------------------------------

def test_event_key_buckets_by_second():
    assert event_key("incoming_call", "c1", 1_700_000_000_999) == "incoming_call:c1:1700000000"


def test_duplicate_sdk_event_in_same_second_is_dropped():
    bridge = CallEventBridge(clock=ManualClock())

    assert bridge.process_sdk_event("incoming_call", "c1") is True
    assert bridge.process_sdk_event("incoming_call", "c1") is False
    assert bridge.process_sdk_event("call_ended", "c1") is True


def test_webhook_and_sdk_report_of_same_change_is_handled_once():
    clock = ManualClock()
    bridge = CallEventBridge(clock=clock)

    assert bridge.process_sdk_event("call_ended", "c1") is True
    assert bridge.process_webhook_event("call.hungup", "c1", clock()) is False

    stats = bridge.stats()
    assert stats["sdk_events"] == 1
    assert stats["webhook_events"] == 0


def test_expired_entries_are_evicted_once_cache_is_full():
    clock = ManualClock()
    bridge = CallEventBridge(clock=clock, max_entries=2, window_ms=5_000)

    bridge.process_sdk_event("incoming_call", "a")
    bridge.process_sdk_event("incoming_call", "b")
    clock.advance(10_000)
    bridge.process_sdk_event("incoming_call", "c")

    assert bridge.stats()["cache_size"] == 1

    bridge.clear()
    assert bridge.stats()["total_processed"] == 0


def test_event_name_mappings():
    assert webhook_to_sdk_event("call.created") == "incoming_call"
    assert sdk_to_webhook_event("outgoing_answered") == "call.answered"
    assert webhook_to_sdk_event("contact.created") is None


# ---------------------------------------------------------------------
# Record store
# ---------------------------------------------------------------------

def test_record_store_insert_select_update():
    store = InMemoryCallRecordStore()

    row = store.insert({"external_id": "c1", "status": "ringing"})
    assert row["id"]
    assert row["ended_at"] is None

    with pytest.raises(ValueError):
        store.insert({"external_id": "c1"})

    store.update("c1", {"status": "completed", "id": "overwritten"})
    selected = store.select(external_id="c1")[0]
    assert selected["status"] == "completed"
    assert selected["id"] == row["id"]

    assert store.update("missing", {"status": "completed"}) is None
    assert store.select(status="ringing") == []


# ---------------------------------------------------------------------
# SDK call sync
# ---------------------------------------------------------------------

def test_outbound_call_sync_assigns_phones_by_direction():
    store = InMemoryCallRecordStore()
    sync = CallSyncService(store=store, organization_id="org_1", clock=lambda: "2024-01-01T00:00:00+00:00")
    call = CallRecord(id="c9", direction=CallDirection.OUTBOUND, from_number="+1000", to_number="+2000")

    assert sync.sync(call, "started") is True
    # second start for the same call is not inserted again
    assert sync.sync(call, "started") is True

    row = store.select(external_id="c9")[0]
    assert len(store) == 1
    assert row["customer_phone"] == "+2000"
    assert row["agent_phone"] == "+1000"
    assert row["status"] == CallStatus.RINGING.value
    assert row["metadata"]["direction"] == "outbound"


def test_call_sync_requires_organization():
    sync = CallSyncService(store=InMemoryCallRecordStore(), organization_id=None)

    with pytest.raises(CallSyncError):
        sync.sync(CallRecord(id="c1", direction=CallDirection.INBOUND), "started")


def test_call_sync_store_failure_is_reported_not_raised():
    class BrokenStore(InMemoryCallRecordStore):
        def insert(self, record):
            raise RuntimeError("database unavailable")

    sync = CallSyncService(store=BrokenStore(), organization_id="org_1")

    assert sync.sync(CallRecord(id="c1", direction=CallDirection.INBOUND), "started") is False


# ---------------------------------------------------------------------
# Webhook ingestion
# ---------------------------------------------------------------------

def test_event_type_wins_over_payload_status():
    assert map_webhook_status("call.hungup", "answered") is CallStatus.COMPLETED
    assert map_webhook_status("call.unknown", "busy") is CallStatus.BUSY
    assert map_webhook_status("call.unknown", "weird") is CallStatus.RINGING
    assert map_webhook_status("call.unknown", None) is CallStatus.RINGING


def test_normalize_webhook_maps_fields():
    record = normalize_webhook(webhook(duration=33), organization_id="org_1")

    assert record["external_id"] == "812"
    assert record["status"] == "answered"
    assert record["customer_phone"] == "+33 1 00 00 00 00"
    assert record["agent_phone"] == "+33 2 00 00 00 00"
    assert record["started_at"] == "2023-11-14T22:13:20+00:00"
    assert "ended_at" not in record
    assert record["duration_seconds"] == 33


def test_malformed_webhook_is_rejected():
    with pytest.raises(InvalidWebhookError):
        normalize_webhook({"data": {"id": 1}}, organization_id="org_1")
    with pytest.raises(InvalidWebhookError):
        normalize_webhook({"event": "call.created", "data": {}}, organization_id="org_1")


def test_ingest_stores_then_updates_then_dedups():
    store = InMemoryCallRecordStore()
    bridge = CallEventBridge(clock=ManualClock())

    first = ingest_webhook(webhook("call.created"), store=store, bridge=bridge, organization_id="org_1")
    assert first.outcome == "stored"
    assert first.status is CallStatus.RINGING

    ended = ingest_webhook(
        webhook("call.hungup", ended_at=1_700_000_060, duration=60),
        store=store, bridge=bridge, organization_id="org_1",
    )
    assert ended.status is CallStatus.COMPLETED
    assert len(store) == 1
    assert store.select(external_id="812")[0]["duration_seconds"] == 60

    again = ingest_webhook(webhook("call.ended"), store=store, bridge=bridge, organization_id="org_1")
    assert again.outcome == "duplicate"


def test_ingest_without_organization_is_skipped():
    store = InMemoryCallRecordStore()

    result = ingest_webhook(webhook(), store=store, bridge=CallEventBridge(), organization_id=None)

    assert result.outcome == "skipped"
    assert len(store) == 0
