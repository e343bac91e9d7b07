"""
Error types and initialization error classification.

This module contains NO timers, NO async, NO side effects.
"""
from __future__ import annotations

from orchestrator.enums.error_kind import ErrorKind

from spec import AUTH_ERROR_PATTERNS, BLOCKING_ERROR_PATTERNS


class PhoneIntegrationError(Exception):
    """Base class for errors raised by phone integration adapters."""


class SdkNotReadyError(PhoneIntegrationError):
    """An SDK operation was attempted before the widget was available."""


class SdkInitializationError(PhoneIntegrationError):
    """The widget reported that initialize() failed."""


def classify_init_error(message: str) -> ErrorKind:
    """
    Map an initialization failure message onto the failure taxonomy.

    Blocking patterns win over auth patterns: a message carrying both
    (e.g. "authentication timeout") is treated as blocked, since no login
    can succeed until the network path is open.

    Never returns TRANSIENT or FATAL; those come from the reconnection
    broker and workspace checks respectively.
    """
    lowered = message.lower()

    if any(p in lowered for p in BLOCKING_ERROR_PATTERNS):
        return ErrorKind.BLOCKING

    if any(p in lowered for p in AUTH_ERROR_PATTERNS):
        return ErrorKind.AUTH_REQUIRED

    return ErrorKind.UNKNOWN
