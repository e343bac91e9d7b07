"""
Call direction and status enumerations.
"""

from __future__ import annotations

from enum import Enum


class CallDirection(str, Enum):
    """Direction as reported by the SDK or webhook."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


class CallStatus(str, Enum):
    """
    Normalized call status stored on call records.

    Provider statuses are mapped onto these in calls/webhook.py.
    """

    RINGING = "ringing"
    ANSWERED = "answered"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    MISSED = "missed"
    BUSY = "busy"
    FAILED = "failed"
    TRANSFERRED = "transferred"
    ON_HOLD = "on_hold"
