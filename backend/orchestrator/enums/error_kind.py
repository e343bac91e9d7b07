"""
Failure taxonomy for the phone integration.

Each kind maps to a different user remedy, so they must never be
conflated:

BLOCKING:
    Network block, ad-blocker, third-party cookies or unsupported browser.
    Not recoverable automatically; the user changes environment and retries.

AUTH_REQUIRED:
    The widget rejected the credentials or session. The user logs in again.

TRANSIENT:
    The SDK reported a disconnect. Recovered by the reconnection broker.

UNKNOWN:
    Any other initialization failure. Surfaced, but a login attempt is
    still offered.

FATAL:
    Workspace creation failed or reconnection was exhausted. The user
    must reload.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Classification bucket for surfaced failures."""

    BLOCKING = "blocking"
    AUTH_REQUIRED = "auth_required"
    TRANSIENT = "transient"
    UNKNOWN = "unknown"
    FATAL = "fatal"
