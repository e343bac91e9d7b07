"""
Side-effect command definitions for the controller.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.events import EventType
from orchestrator.state_dataclass import CallRecord

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Initialization
    RUN_DIAGNOSTICS = "RUN_DIAGNOSTICS"
    INITIALIZE_SDK = "INITIALIZE_SDK"
    REGISTER_CALL_HANDLERS = "REGISTER_CALL_HANDLERS"
    CHECK_CACHED_LOGIN = "CHECK_CACHED_LOGIN"
    RESTART_INTEGRATION = "RESTART_INTEGRATION"
    DISCONNECT_SDK = "DISCONNECT_SDK"

    # Login
    CHECK_LOGIN_STATUS = "CHECK_LOGIN_STATUS"
    SET_SDK_LOGIN_STATUS = "SET_SDK_LOGIN_STATUS"

    # Persistence
    PERSIST_CONNECTION_METADATA = "PERSIST_CONNECTION_METADATA"
    CLEAR_CONNECTION_METADATA = "CLEAR_CONNECTION_METADATA"
    PERSIST_OPT_OUT = "PERSIST_OPT_OUT"

    # Workspace
    SHOW_WORKSPACE = "SHOW_WORKSPACE"
    HIDE_WORKSPACE = "HIDE_WORKSPACE"

    # Reconnection
    REQUEST_RECONNECT = "REQUEST_RECONNECT"
    RESET_RECONNECT_ATTEMPTS = "RESET_RECONNECT_ATTEMPTS"
    CANCEL_RECONNECT = "CANCEL_RECONNECT"

    # Calls
    SYNC_CALL_RECORD = "SYNC_CALL_RECORD"

    # User feedback
    NOTIFY = "NOTIFY"

    # Timers
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Initialization Commands
# =============================================================================

@dataclass(frozen=True)
class RunDiagnostics(Command):
    """Run cookie + browser checks; runtime emits DiagnosticsCompleted."""
    command_type: CommandType = CommandType.RUN_DIAGNOSTICS


@dataclass(frozen=True)
class InitializeSDK(Command):
    """
    Call SDK initialize().

    Runtime emits exactly one of WorkspaceCreated, WorkspaceCreationFailed
    or InitializationFailed.
    """
    command_type: CommandType = CommandType.INITIALIZE_SDK


@dataclass(frozen=True)
class RegisterCallHandlers(Command):
    """Subscribe to SDK call events (idempotent)."""
    command_type: CommandType = CommandType.REGISTER_CALL_HANDLERS


@dataclass(frozen=True)
class CheckCachedLogin(Command):
    """
    Inspect the SDK's cached login and persisted connection metadata.

    Runtime emits SdkLogin(source="cached") or LoginRequired.
    """
    command_type: CommandType = CommandType.CHECK_CACHED_LOGIN


@dataclass(frozen=True)
class RestartIntegration(Command):
    """Clear opt-out, tear the SDK down and start initialization again."""
    command_type: CommandType = CommandType.RESTART_INTEGRATION


@dataclass(frozen=True)
class DisconnectSDK(Command):
    """Disconnect the SDK if it is ready."""
    command_type: CommandType = CommandType.DISCONNECT_SDK


# =============================================================================
# Login Commands
# =============================================================================

@dataclass(frozen=True)
class CheckLoginStatus(Command):
    """
    Query the SDK login status.

    Runtime emits SdkLogin(source) or LoginCheckFailed(source).
    """
    source: str
    command_type: CommandType = CommandType.CHECK_LOGIN_STATUS


@dataclass(frozen=True)
class SetSdkLoginStatus(Command):
    """Set (True) or clear (False) the SDK's cached login flag."""
    logged_in: bool
    command_type: CommandType = CommandType.SET_SDK_LOGIN_STATUS


# =============================================================================
# Persistence Commands
# =============================================================================

@dataclass(frozen=True)
class PersistConnectionMetadata(Command):
    """Store connection timestamp + attempts."""
    command_type: CommandType = CommandType.PERSIST_CONNECTION_METADATA


@dataclass(frozen=True)
class ClearConnectionMetadata(Command):
    """Forget connection timestamp + attempts."""
    command_type: CommandType = CommandType.CLEAR_CONNECTION_METADATA


@dataclass(frozen=True)
class PersistOptOut(Command):
    """Record the session-scoped opt-out."""
    opted_out: bool
    command_type: CommandType = CommandType.PERSIST_OPT_OUT


# =============================================================================
# Workspace Commands
# =============================================================================

@dataclass(frozen=True)
class ShowWorkspace(Command):
    """Reveal the widget container (for_login bypasses readiness checks)."""
    for_login: bool = False
    command_type: CommandType = CommandType.SHOW_WORKSPACE


@dataclass(frozen=True)
class HideWorkspace(Command):
    """Hide the widget container."""
    command_type: CommandType = CommandType.HIDE_WORKSPACE


# =============================================================================
# Reconnection Commands
# =============================================================================

@dataclass(frozen=True)
class RequestReconnect(Command):
    """Ask the reconnection broker for an attempt."""
    source: str = "controller"
    command_type: CommandType = CommandType.REQUEST_RECONNECT


@dataclass(frozen=True)
class ResetReconnectAttempts(Command):
    """Reset the broker's attempt counter after a confirmed login."""
    command_type: CommandType = CommandType.RESET_RECONNECT_ATTEMPTS


@dataclass(frozen=True)
class CancelReconnect(Command):
    """Stop an in-flight reconnection, including its pending backoff delay."""
    command_type: CommandType = CommandType.CANCEL_RECONNECT


# =============================================================================
# Call Commands
# =============================================================================

@dataclass(frozen=True)
class SyncCallRecord(Command):
    """
    Mirror a call lifecycle change into the record store.

    stage: "started" or "ended"
    """
    call: CallRecord
    stage: str
    command_type: CommandType = CommandType.SYNC_CALL_RECORD


# =============================================================================
# User Feedback Commands
# =============================================================================

@dataclass(frozen=True)
class Notify(Command):
    """
    Human-readable notification for the UI.

    variant: "default" or "destructive"
    """
    title: str
    description: str
    variant: str = "default"
    duration_ms: int | None = None
    command_type: CommandType = CommandType.NOTIFY


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Request to start a named timer.

    On expiration, the runtime must inject the specified timeout event.
    """
    timer_id: str
    duration_ms: int
    timeout_event_type: EventType
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Request to cancel a previously scheduled timer."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
