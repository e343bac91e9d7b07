"""
Mirror SDK call lifecycle changes into the `calls` record set.

Reporting only: a failed sync is logged and never affects the controller.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Callable

from observability.logger import log_event
from orchestrator.enums.call import CallDirection, CallStatus
from orchestrator.errors import PhoneIntegrationError
from orchestrator.runtime_context import CallRecordStore
from orchestrator.state_dataclass import CallRecord


class CallSyncError(PhoneIntegrationError):
    """The call could not be attributed to an organization."""


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CallSyncService:

    def __init__(
        self,
        *,
        store: CallRecordStore,
        organization_id: str | None,
        controller_id: str = "",
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._store = store
        self._organization_id = organization_id
        self._controller_id = controller_id
        self._clock = clock

    def sync(self, call: CallRecord, stage: str) -> bool:
        """
        stage "started" inserts a ringing record unless one exists;
        stage "ended" marks it completed.

        Raises CallSyncError when no organization is configured.
        """
        if not self._organization_id:
            self._log("call_sync_failed", call, stage, "missing_organization_id")
            raise CallSyncError("No organization configured for call sync")

        try:
            if stage == "started":
                self._on_started(call)
            elif stage == "ended":
                self._on_ended(call)
            else:
                raise ValueError(f"unknown sync stage: {stage}")
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._log("call_sync_failed", call, stage, str(exc))
            return False

        self._log("call_synced", call, stage)
        return True

    def _on_started(self, call: CallRecord) -> None:
        if self._store.select(external_id=call.id):
            return

        inbound = call.direction is CallDirection.INBOUND
        self._store.insert({
            "external_id": call.id,
            "organization_id": self._organization_id,
            "direction": call.direction.value,
            "status": CallStatus.RINGING.value,
            "customer_phone": call.from_number if inbound else call.to_number,
            "agent_phone": call.to_number if inbound else call.from_number,
            "started_at": self._clock(),
            "metadata": {k: _plain(v) for k, v in asdict(call).items()},
        })

    def _on_ended(self, call: CallRecord) -> None:
        self._store.update(call.id, {
            "status": CallStatus.COMPLETED.value,
            "ended_at": self._clock(),
            "duration_seconds": call.duration_s,
        })

    def _log(self, event_type: str, call: CallRecord, stage: str, error: str | None = None) -> None:
        log_event({
            "event_type": event_type,
            "controller_id": self._controller_id,
            "call_id": call.id,
            "stage": stage,
            "error": error,
        })


def _plain(value: object) -> object:
    if isinstance(value, (CallDirection, CallStatus)):
        return value.value
    return value
