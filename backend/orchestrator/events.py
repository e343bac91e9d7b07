"""
Unified event definitions for the controller reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

SDK callbacks never touch state directly: they construct one of these
events and hand it to Runtime.handle_event().
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from orchestrator.state_dataclass import CallRecord


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (phase, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------
    START_REQUESTED = "START_REQUESTED"
    DIAGNOSTICS_COMPLETED = "DIAGNOSTICS_COMPLETED"
    WORKSPACE_CREATED = "WORKSPACE_CREATED"
    WORKSPACE_CREATION_FAILED = "WORKSPACE_CREATION_FAILED"
    INITIALIZATION_FAILED = "INITIALIZATION_FAILED"
    LOGIN_REQUIRED = "LOGIN_REQUIRED"

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------
    SDK_LOGIN = "SDK_LOGIN"
    SDK_LOGOUT = "SDK_LOGOUT"
    LOGIN_CHECK_FAILED = "LOGIN_CHECK_FAILED"
    MANUAL_LOGIN_CONFIRM = "MANUAL_LOGIN_CONFIRM"

    # ------------------------------------------------------------------
    # Reconnection outcomes
    # ------------------------------------------------------------------
    RECONNECTED = "RECONNECTED"
    RECONNECT_EXHAUSTED = "RECONNECT_EXHAUSTED"

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------
    CALL_STARTED = "CALL_STARTED"
    CALL_ENDED = "CALL_ENDED"

    # ------------------------------------------------------------------
    # User control
    # ------------------------------------------------------------------
    FORCE_RETRY = "FORCE_RETRY"
    OPT_OUT = "OPT_OUT"
    WIDGET_DETACHED = "WIDGET_DETACHED"

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    LOGIN_POLL_TICK = "LOGIN_POLL_TICK"
    LOGIN_TIMEOUT_WARNING = "LOGIN_TIMEOUT_WARNING"
    MANUAL_LOGIN_RECHECK = "MANUAL_LOGIN_RECHECK"
    GRACE_PERIOD_ENDED = "GRACE_PERIOD_ENDED"
    CALL_CLEAR_TIMEOUT = "CALL_CLEAR_TIMEOUT"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Initialization Events
# =============================================================================

@dataclass(frozen=True)
class StartRequested(Event):
    """
    Application asked the controller to bring the phone integration up.

    Preconditions are evaluated by the caller and carried as facts.
    """
    opted_out: bool = False
    has_credentials: bool = True


@dataclass(frozen=True)
class DiagnosticsCompleted(Event):
    """Environment diagnostics finished (cookie probe + browser check)."""
    cookies_supported: bool
    browser_supported: bool
    requires_configuration: bool = False
    issues: tuple[str, ...] = ()
    browser_name: str = ""
    recommendation: str = ""
    cookie_details: str = ""
    remediation: tuple[str, ...] = ()


@dataclass(frozen=True)
class WorkspaceCreated(Event):
    """SDK initialize() returned and reports a created workspace."""


@dataclass(frozen=True)
class WorkspaceCreationFailed(Event):
    """SDK initialize() returned but no workspace exists."""


@dataclass(frozen=True)
class InitializationFailed(Event):
    """SDK initialize() raised. The message drives error classification."""
    message: str


@dataclass(frozen=True)
class LoginRequired(Event):
    """No usable cached login after workspace creation."""
    reason: str = "no_cached_login"


# =============================================================================
# Login Events
# =============================================================================

@dataclass(frozen=True)
class SdkLogin(Event):
    """
    Login confirmed.

    source:
        "sdk" (onLogin callback), "poll", "manual", "manual_recheck"
        or "cached".
    """
    source: str = "sdk"


@dataclass(frozen=True)
class SdkLogout(Event):
    """SDK onLogout callback fired."""


@dataclass(frozen=True)
class LoginCheckFailed(Event):
    """A login status check (poll or manual) returned logged-out."""
    source: str


@dataclass(frozen=True)
class ManualLoginConfirm(Event):
    """User claims to have completed login in the workspace."""


# =============================================================================
# Reconnection Events
# =============================================================================

@dataclass(frozen=True)
class Reconnected(Event):
    """Reconnection broker re-established a logged-in SDK."""
    attempts: int = 0


@dataclass(frozen=True)
class ReconnectExhausted(Event):
    """Reconnection broker gave up after its maximum attempts."""
    attempts: int = 0


# =============================================================================
# Call Events
# =============================================================================

@dataclass(frozen=True)
class CallStarted(Event):
    """Incoming or outgoing call reported by the SDK."""
    call: CallRecord


@dataclass(frozen=True)
class CallEnded(Event):
    """Call ended reported by the SDK."""
    call: CallRecord


# =============================================================================
# User Control Events
# =============================================================================

@dataclass(frozen=True)
class ForceRetry(Event):
    """User asked to retry after a failure."""


@dataclass(frozen=True)
class OptOut(Event):
    """User disabled the phone integration for this session."""


@dataclass(frozen=True)
class WidgetDetached(Event):
    """The browser shim hosting the widget went away (reload, tab closed)."""


# =============================================================================
# Timer Events
# =============================================================================

@dataclass(frozen=True)
class LoginPollTick(Event):
    """Login polling interval elapsed."""


@dataclass(frozen=True)
class LoginTimeoutWarning(Event):
    """Login prompt has been open for LOGIN_TIMEOUT_WARNING_MS."""


@dataclass(frozen=True)
class ManualLoginRecheck(Event):
    """Delayed second check after a failed manual confirmation."""


@dataclass(frozen=True)
class GracePeriodEnded(Event):
    """Post-login grace period elapsed."""


@dataclass(frozen=True)
class CallClearTimeout(Event):
    """Ended call may now be cleared from current_call."""
