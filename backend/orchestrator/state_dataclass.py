"""
Authoritative controller state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from orchestrator.enums.call import CallDirection, CallStatus
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.enums.phase import Phase


# =============================================================================
# Calls
# =============================================================================

@dataclass(frozen=True)
class CallRecord:
    """Single call as tracked by the controller."""
    id: str
    direction: CallDirection
    from_number: str = ""
    to_number: str = ""
    status: CallStatus = CallStatus.RINGING
    duration_s: int | None = None

    @staticmethod
    def from_sdk(data: dict[str, Any], *, direction: CallDirection) -> CallRecord:
        """
        Build a CallRecord from an SDK event payload.

        The widget reports ids under either `call_id` or `id`, and numbers
        either as from/to or as a single `phone_number`.
        """
        call_id = data.get("call_id", data.get("id", "unknown"))
        phone_number = data.get("phone_number") or ""
        raw_status = data.get("status") or CallStatus.RINGING.value
        try:
            status = CallStatus(raw_status)
        except ValueError:
            status = CallStatus.RINGING

        return CallRecord(
            id=str(call_id),
            direction=direction,
            from_number=data.get("from") or (
                phone_number if direction is CallDirection.INBOUND else ""
            ),
            to_number=data.get("to") or (
                phone_number if direction is CallDirection.OUTBOUND else ""
            ),
            status=status,
            duration_s=data.get("duration"),
        )


# =============================================================================
# Connection State
# =============================================================================

@dataclass(frozen=True)
class ConnectionState:
    """Immutable snapshot of all controller-owned state."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    phase: Phase = Phase.IDLE

    # Set once the first StartRequested is accepted; cleared only by ForceRetry
    init_attempted: bool = False

    # Invariant: never True while phase is IDLE or FAILED
    is_connected: bool = False

    # Independent of login: a workspace can be ready but logged out
    is_workspace_ready: bool = False

    # Produced once per initialization run
    diagnostic_issues: tuple[str, ...] = ()

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------
    current_call: CallRecord | None = None

    # ------------------------------------------------------------------
    # Login flow
    # ------------------------------------------------------------------
    show_login_prompt: bool = False
    in_grace_period: bool = False
    login_poll_attempts: int = 0
    manual_recheck_pending: bool = False

    # ------------------------------------------------------------------
    # Reconnection (the attempt counter itself lives in the broker)
    # ------------------------------------------------------------------
    is_reconnecting: bool = False

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------
    error: str | None = None
    error_kind: ErrorKind | None = None
