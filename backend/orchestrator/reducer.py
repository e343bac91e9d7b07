"""
Pure controller reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (phase, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from orchestrator.commands import (
    CancelReconnect,
    CancelTimer,
    CheckCachedLogin,
    CheckLoginStatus,
    ClearConnectionMetadata,
    Command,
    DisconnectSDK,
    HideWorkspace,
    InitializeSDK,
    LogEvent,
    Notify,
    PersistConnectionMetadata,
    PersistOptOut,
    RegisterCallHandlers,
    RequestReconnect,
    ResetReconnectAttempts,
    RestartIntegration,
    RunDiagnostics,
    SetSdkLoginStatus,
    ShowWorkspace,
    StartTimer,
    SyncCallRecord,
)
from orchestrator.enums.call import CallStatus
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.enums.phase import Phase
from orchestrator.errors import classify_init_error
from orchestrator.events import (
    CallClearTimeout,
    CallEnded,
    CallStarted,
    DiagnosticsCompleted,
    Event,
    EventType,
    ForceRetry,
    GracePeriodEnded,
    InitializationFailed,
    LoginCheckFailed,
    LoginPollTick,
    LoginRequired,
    LoginTimeoutWarning,
    ManualLoginConfirm,
    ManualLoginRecheck,
    OptOut,
    ReconnectExhausted,
    Reconnected,
    SdkLogin,
    SdkLogout,
    StartRequested,
    WidgetDetached,
    WorkspaceCreated,
    WorkspaceCreationFailed,
)
from orchestrator.state_dataclass import ConnectionState
from spec import (
    CALL_CLEAR_DELAY_MS,
    LOGIN_GRACE_PERIOD_MS,
    LOGIN_POLL_INTERVAL_MS,
    LOGIN_POLL_MAX_ATTEMPTS,
    LOGIN_TIMEOUT_WARNING_MS,
    MANUAL_LOGIN_RECHECK_DELAY_MS,
)


# =============================================================================
# Timer IDs
# =============================================================================

TIMER_LOGIN_POLL = "login_poll"
TIMER_LOGIN_WARNING = "login_timeout_warning"
TIMER_MANUAL_RECHECK = "manual_login_recheck"
TIMER_GRACE_PERIOD = "login_grace_period"
TIMER_CALL_CLEAR = "call_clear"

_LOGIN_WAIT_TIMERS = (TIMER_LOGIN_POLL, TIMER_LOGIN_WARNING, TIMER_MANUAL_RECHECK)
_ALL_TIMERS = _LOGIN_WAIT_TIMERS + (TIMER_GRACE_PERIOD, TIMER_CALL_CLEAR)

# Phases in which a login is still expected from the user
_AWAITING_LOGIN = (Phase.NEEDS_LOGIN, Phase.LOGGING_IN)

BLOCKED_REMEDIATION = (
    "Disable ad-blockers or privacy extensions for this site",
    "Use Google Chrome",
    "Try a private or incognito window",
)


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: ConnectionState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "phase": state.phase.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "is_connected": state.is_connected,
            "is_workspace_ready": state.is_workspace_ready,
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(
    state: ConnectionState, event: Event, reason: str
) -> tuple[ConnectionState, tuple[Command, ...]]:
    log = _log(state, event, "ignore", {"reason": reason})
    return state, (LogEvent(event={**log.event, "level": "DEBUG"}),)


def _phase_log(
    old: ConnectionState,
    new: ConnectionState,
    event: Event,
    source: str,
) -> tuple[Command, ...]:
    if old.phase is new.phase:
        return ()
    return (
        _log(
            new,
            event,
            "state_changed",
            {
                "from_phase": old.phase.value,
                "to_phase": new.phase.value,
                "source": source,
            },
        ),
    )


def _cancel(*timer_ids: str) -> tuple[Command, ...]:
    return tuple(CancelTimer(timer_id=t) for t in timer_ids)


def _login_offered(state: ConnectionState) -> bool:
    """A failed integration accepts a login only after an unknown init error."""
    return state.phase is not Phase.FAILED or state.error_kind is ErrorKind.UNKNOWN


def _with_remediation(description: str, steps: tuple[str, ...]) -> str:
    if not steps:
        return description
    return description + " " + "; ".join(steps) + "."


# =============================================================================
# Initialization
# =============================================================================

def _on_start_requested(
    state: ConnectionState, event: StartRequested
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.init_attempted:
        return _ignore(state, event, "already_attempted")
    if event.opted_out:
        return _ignore(state, event, "opted_out")
    if not event.has_credentials:
        return _ignore(state, event, "missing_credentials")
    if state.phase is not Phase.IDLE:
        return _ignore(state, event, "not_idle")

    new_state = replace(
        state,
        phase=Phase.DIAGNOSTICS,
        init_attempted=True,
        diagnostic_issues=(),
        error=None,
        error_kind=None,
    )
    return new_state, _logs_last(
        (RunDiagnostics(),)
        + _phase_log(state, new_state, event, "start_requested")
    )


def _on_diagnostics_completed(
    state: ConnectionState, event: DiagnosticsCompleted
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is not Phase.DIAGNOSTICS:
        return _ignore(state, event, "not_in_diagnostics")

    if not event.cookies_supported or not event.browser_supported:
        if not event.browser_supported:
            reason = f"{event.browser_name or 'This browser'} is not supported."
            description = f"{reason} {event.recommendation}".strip()
        else:
            reason = "Third-party cookies are blocked."
            description = f"{reason} {event.cookie_details}".strip()

        new_state = replace(
            state,
            phase=Phase.FAILED,
            is_connected=False,
            diagnostic_issues=event.issues,
            error=reason,
            error_kind=ErrorKind.BLOCKING,
        )
        return new_state, _logs_last((
            Notify(
                title="Phone integration blocked",
                description=_with_remediation(description, event.remediation),
                variant="destructive",
            ),
            _log(new_state, event, "diagnostics_blocked", {"issues": list(event.issues)}),
        ) + _phase_log(state, new_state, event, "diagnostics"))

    new_state = replace(
        state,
        phase=Phase.CREATING_WORKSPACE,
        diagnostic_issues=event.issues,
    )

    cmds: tuple[Command, ...] = ()
    if event.requires_configuration:
        cmds += (
            Notify(
                title=f"{event.browser_name} needs configuration",
                description=event.recommendation,
            ),
            _log(new_state, event, "diagnostics_advisory", {"issues": list(event.issues)}),
        )

    return new_state, _logs_last(
        cmds
        + (InitializeSDK(),)
        + _phase_log(state, new_state, event, "diagnostics")
    )


def _on_workspace_created(
    state: ConnectionState, event: WorkspaceCreated
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is not Phase.CREATING_WORKSPACE:
        return _ignore(state, event, "not_creating_workspace")

    new_state = replace(
        state,
        phase=Phase.WORKSPACE_READY,
        is_workspace_ready=True,
    )
    return new_state, _logs_last((
        RegisterCallHandlers(),
        Notify(
            title="Phone ready",
            description="Please log in through the workspace to start receiving calls",
        ),
        CheckCachedLogin(),
    ) + _phase_log(state, new_state, event, "workspace_created"))


def _on_workspace_creation_failed(
    state: ConnectionState, event: WorkspaceCreationFailed
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is not Phase.CREATING_WORKSPACE:
        return _ignore(state, event, "not_creating_workspace")

    new_state = replace(
        state,
        phase=Phase.FAILED,
        is_connected=False,
        is_workspace_ready=False,
        error="Workspace creation failed",
        error_kind=ErrorKind.FATAL,
    )
    return new_state, _logs_last((
        Notify(
            title="Initialization failed",
            description="Unable to create the phone workspace. Check your API credentials.",
            variant="destructive",
        ),
    ) + _phase_log(state, new_state, event, "workspace_creation_failed"))


def _on_initialization_failed(
    state: ConnectionState, event: InitializationFailed
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is not Phase.CREATING_WORKSPACE:
        return _ignore(state, event, "not_creating_workspace")

    kind = classify_init_error(event.message)
    classified = _log(state, event, "classify_init_error", {
        "kind": kind.value,
        "message": event.message,
    })

    if kind is ErrorKind.BLOCKING:
        new_state = replace(
            state,
            phase=Phase.FAILED,
            is_connected=False,
            show_login_prompt=False,
            error=event.message,
            error_kind=kind,
        )
        return new_state, _logs_last((
            classified,
            Notify(
                title="Phone connection blocked",
                description=_with_remediation(
                    "The phone workspace could not be reached.",
                    BLOCKED_REMEDIATION,
                ),
                variant="destructive",
            ),
        ) + _phase_log(state, new_state, event, "init_blocked"))

    if kind is ErrorKind.AUTH_REQUIRED:
        new_state = replace(
            state,
            phase=Phase.NEEDS_LOGIN,
            show_login_prompt=True,
            error=event.message,
            error_kind=kind,
        )
        return new_state, _logs_last((
            classified,
            ShowWorkspace(for_login=True),
            Notify(
                title="Phone login required",
                description="Please log in again through the phone workspace.",
            ),
        ) + _phase_log(state, new_state, event, "init_auth_required"))

    # Unknown failures still offer a login attempt
    new_state = replace(
        state,
        phase=Phase.FAILED,
        is_connected=False,
        show_login_prompt=True,
        error=event.message,
        error_kind=kind,
    )
    return new_state, _logs_last((
        classified,
        ShowWorkspace(for_login=True),
        Notify(
            title="Phone connection failed",
            description=(
                "Unable to connect to the phone system. "
                "You can still try logging in through the workspace."
            ),
            variant="destructive",
        ),
    ) + _phase_log(state, new_state, event, "init_unknown_error"))


def _on_login_required(
    state: ConnectionState, event: LoginRequired
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is not Phase.WORKSPACE_READY:
        return _ignore(state, event, "not_workspace_ready")

    new_state = replace(
        state,
        phase=Phase.NEEDS_LOGIN,
        show_login_prompt=True,
        login_poll_attempts=0,
    )
    return new_state, _logs_last((
        ShowWorkspace(for_login=True),
        StartTimer(
            timer_id=TIMER_LOGIN_POLL,
            duration_ms=LOGIN_POLL_INTERVAL_MS,
            timeout_event_type=EventType.LOGIN_POLL_TICK,
        ),
        StartTimer(
            timer_id=TIMER_LOGIN_WARNING,
            duration_ms=LOGIN_TIMEOUT_WARNING_MS,
            timeout_event_type=EventType.LOGIN_TIMEOUT_WARNING,
        ),
        _log(new_state, event, "login_required", {"reason": event.reason}),
    ) + _phase_log(state, new_state, event, "login_required"))


# =============================================================================
# Login / logout
# =============================================================================

def _on_sdk_login(
    state: ConnectionState, event: SdkLogin
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is Phase.IDLE:
        return _ignore(state, event, "not_started")
    if state.is_connected and state.phase is Phase.LOGGED_IN:
        return _ignore(state, event, "already_logged_in")
    if not _login_offered(state):
        return _ignore(state, event, "login_not_available")

    new_state = replace(
        state,
        phase=Phase.LOGGED_IN,
        is_connected=True,
        is_workspace_ready=True,
        show_login_prompt=False,
        in_grace_period=True,
        login_poll_attempts=0,
        manual_recheck_pending=False,
        is_reconnecting=False,
        error=None,
        error_kind=None,
    )
    return new_state, _logs_last(
        _cancel(*_LOGIN_WAIT_TIMERS)
        + (
            SetSdkLoginStatus(logged_in=True),
            ResetReconnectAttempts(),
            PersistConnectionMetadata(),
            ShowWorkspace(for_login=False),
            StartTimer(
                timer_id=TIMER_GRACE_PERIOD,
                duration_ms=LOGIN_GRACE_PERIOD_MS,
                timeout_event_type=EventType.GRACE_PERIOD_ENDED,
            ),
            Notify(
                title="Logged in successfully",
                description="You are now connected to the phone system",
            ),
            _log(new_state, event, "login_confirmed", {"source": event.source}),
        )
        + _phase_log(state, new_state, event, f"login_{event.source}")
    )


def _on_sdk_logout(
    state: ConnectionState, event: SdkLogout
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is Phase.IDLE:
        return _ignore(state, event, "not_started")
    if state.in_grace_period:
        return _ignore(state, event, "grace_period")

    if state.is_connected:
        new_state = replace(
            state,
            is_connected=False,
            is_reconnecting=True,
            error_kind=ErrorKind.TRANSIENT,
        )
        return new_state, _logs_last((
            Notify(
                title="Connection lost",
                description="Attempting to reconnect...",
            ),
            RequestReconnect(source="sdk_logout"),
            _log(new_state, event, "disconnected"),
        ))

    # Logged out without a live connection: the user has to log in again
    phase = state.phase
    if phase in (Phase.LOGGED_IN, Phase.WORKSPACE_READY, Phase.LOGGING_IN):
        phase = Phase.NEEDS_LOGIN

    new_state = replace(
        state,
        phase=phase,
        show_login_prompt=True,
        manual_recheck_pending=False,
    )
    return new_state, _logs_last((
        SetSdkLoginStatus(logged_in=False),
        ClearConnectionMetadata(),
        ShowWorkspace(for_login=True),
        _log(new_state, event, "logout_confirmed"),
    ) + _phase_log(state, new_state, event, "sdk_logout"))


def _on_login_check_failed(
    state: ConnectionState, event: LoginCheckFailed
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.is_connected:
        return _ignore(state, event, "already_connected")

    if event.source == "manual":
        if state.phase is not Phase.LOGGING_IN:
            return _ignore(state, event, "not_logging_in")
        new_state = replace(state, manual_recheck_pending=True)
        return new_state, _logs_last((
            StartTimer(
                timer_id=TIMER_MANUAL_RECHECK,
                duration_ms=MANUAL_LOGIN_RECHECK_DELAY_MS,
                timeout_event_type=EventType.MANUAL_LOGIN_RECHECK,
            ),
            Notify(
                title="Checking login status...",
                description="Please wait while we verify your connection",
            ),
            _log(new_state, event, "manual_login_recheck_scheduled"),
        ))

    if event.source == "manual_recheck":
        if state.phase is not Phase.LOGGING_IN:
            return _ignore(state, event, "not_logging_in")
        new_state = replace(
            state,
            phase=Phase.NEEDS_LOGIN,
            show_login_prompt=True,
            manual_recheck_pending=False,
        )
        return new_state, _logs_last((
            Notify(
                title="Not logged in yet",
                description=(
                    "Please complete the login in the phone workspace, "
                    "then try again"
                ),
                variant="destructive",
            ),
        ) + _phase_log(state, new_state, event, "manual_login_failed"))

    return _ignore(state, event, f"negative_{event.source}")


def _on_manual_login_confirm(
    state: ConnectionState, event: ManualLoginConfirm
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.is_connected:
        return _ignore(state, event, "already_connected")

    allowed = _login_offered(state) and state.phase in (
        Phase.NEEDS_LOGIN,
        Phase.WORKSPACE_READY,
        Phase.FAILED,
    )
    if not allowed:
        return _ignore(state, event, "login_not_available")

    new_state = replace(
        state,
        phase=Phase.LOGGING_IN,
        manual_recheck_pending=False,
    )
    return new_state, _logs_last((
        CancelTimer(timer_id=TIMER_MANUAL_RECHECK),
        CheckLoginStatus(source="manual"),
    ) + _phase_log(state, new_state, event, "manual_login_confirm"))


def _on_manual_login_recheck(
    state: ConnectionState, event: ManualLoginRecheck
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if not state.manual_recheck_pending or state.phase is not Phase.LOGGING_IN:
        return _ignore(state, event, "no_recheck_pending")

    new_state = replace(state, manual_recheck_pending=False)
    return new_state, (CheckLoginStatus(source="manual_recheck"),)


def _on_login_poll_tick(
    state: ConnectionState, event: LoginPollTick
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.is_connected or state.phase not in _AWAITING_LOGIN:
        return _ignore(state, event, "not_waiting_for_login")

    attempts = state.login_poll_attempts + 1
    new_state = replace(state, login_poll_attempts=attempts)

    if attempts >= LOGIN_POLL_MAX_ATTEMPTS:
        return new_state, _logs_last((
            CheckLoginStatus(source="poll"),
            _log(new_state, event, "login_poll_exhausted", {"attempts": attempts}),
        ))

    return new_state, (
        CheckLoginStatus(source="poll"),
        StartTimer(
            timer_id=TIMER_LOGIN_POLL,
            duration_ms=LOGIN_POLL_INTERVAL_MS,
            timeout_event_type=EventType.LOGIN_POLL_TICK,
        ),
    )


def _on_login_timeout_warning(
    state: ConnectionState, event: LoginTimeoutWarning
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.is_connected or state.phase not in _AWAITING_LOGIN:
        return _ignore(state, event, "not_waiting_for_login")

    return state, (
        Notify(
            title="Still waiting for login",
            description="Please log in through the phone workspace.",
            duration_ms=8000,
        ),
    )


def _on_grace_period_ended(
    state: ConnectionState, event: GracePeriodEnded
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if not state.in_grace_period:
        return _ignore(state, event, "no_grace_period")
    new_state = replace(state, in_grace_period=False)
    return new_state, (_log(new_state, event, "grace_period_ended"),)


# =============================================================================
# Reconnection outcomes
# =============================================================================

def _on_reconnected(
    state: ConnectionState, event: Reconnected
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is Phase.IDLE:
        return _ignore(state, event, "not_started")

    new_state = replace(
        state,
        phase=Phase.LOGGED_IN,
        is_connected=True,
        is_workspace_ready=True,
        is_reconnecting=False,
        show_login_prompt=False,
        error=None,
        error_kind=None,
    )
    return new_state, _logs_last((
        PersistConnectionMetadata(),
        Notify(
            title="Reconnected",
            description="Phone system connection restored",
        ),
        _log(new_state, event, "reconnected", {"attempts": event.attempts}),
    ) + _phase_log(state, new_state, event, "reconnected"))


def _on_reconnect_exhausted(
    state: ConnectionState, event: ReconnectExhausted
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is Phase.IDLE:
        return _ignore(state, event, "not_started")

    new_state = replace(
        state,
        phase=Phase.FAILED,
        is_connected=False,
        is_reconnecting=False,
        error="Unable to reconnect to the phone system. Please reload the page.",
        error_kind=ErrorKind.FATAL,
    )
    return new_state, _logs_last((
        Notify(
            title="Connection failed",
            description="Unable to reconnect to the phone system. Please reload the page.",
            variant="destructive",
        ),
        _log(new_state, event, "reconnect_exhausted", {"attempts": event.attempts}),
    ) + _phase_log(state, new_state, event, "reconnect_exhausted"))


# =============================================================================
# Calls
# =============================================================================

def _on_call_started(
    state: ConnectionState, event: CallStarted
) -> tuple[ConnectionState, tuple[Command, ...]]:
    new_state = replace(state, current_call=event.call)
    return new_state, _logs_last((
        CancelTimer(timer_id=TIMER_CALL_CLEAR),
        SyncCallRecord(call=event.call, stage="started"),
        _log(new_state, event, "call_started", {
            "call_id": event.call.id,
            "direction": event.call.direction.value,
        }),
    ))


def _on_call_ended(
    state: ConnectionState, event: CallEnded
) -> tuple[ConnectionState, tuple[Command, ...]]:
    current = state.current_call
    if current is not None and current.id == event.call.id:
        current = replace(current, status=CallStatus.COMPLETED)

    new_state = replace(state, current_call=current)
    return new_state, _logs_last((
        StartTimer(
            timer_id=TIMER_CALL_CLEAR,
            duration_ms=CALL_CLEAR_DELAY_MS,
            timeout_event_type=EventType.CALL_CLEAR_TIMEOUT,
        ),
        SyncCallRecord(call=event.call, stage="ended"),
        _log(new_state, event, "call_ended", {"call_id": event.call.id}),
    ))


def _on_call_clear_timeout(
    state: ConnectionState, event: CallClearTimeout
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.current_call is None:
        return _ignore(state, event, "no_current_call")
    new_state = replace(state, current_call=None)
    return new_state, (_log(new_state, event, "call_cleared"),)


# =============================================================================
# User control
# =============================================================================

def _on_force_retry(
    state: ConnectionState, event: ForceRetry
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is not Phase.FAILED:
        return _ignore(state, event, "not_failed")

    new_state = ConnectionState()
    return new_state, _logs_last(
        _cancel(*_ALL_TIMERS)
        + (
            CancelReconnect(),
            ResetReconnectAttempts(),
            RestartIntegration(),
        )
        + _phase_log(state, new_state, event, "force_retry")
    )


def _on_opt_out(
    state: ConnectionState, event: OptOut
) -> tuple[ConnectionState, tuple[Command, ...]]:
    new_state = ConnectionState(init_attempted=state.init_attempted)
    return new_state, _logs_last(
        _cancel(*_ALL_TIMERS)
        + (
            CancelReconnect(),
            PersistOptOut(opted_out=True),
            HideWorkspace(),
            DisconnectSDK(),
            Notify(
                title="Phone integration disabled",
                description="The phone integration is off for this session.",
            ),
        )
        + _phase_log(state, new_state, event, "opt_out")
    )


def _on_widget_detached(
    state: ConnectionState, event: WidgetDetached
) -> tuple[ConnectionState, tuple[Command, ...]]:
    if state.phase is Phase.IDLE:
        return _ignore(state, event, "not_started")

    # A fresh shim has no SDK session; the next HELLO starts over
    new_state = ConnectionState()
    return new_state, _logs_last(
        _cancel(*_ALL_TIMERS)
        + (
            CancelReconnect(),
            ResetReconnectAttempts(),
            DisconnectSDK(),
            _log(new_state, event, "widget_detached", {"previous_phase": state.phase.value}),
        )
        + _phase_log(state, new_state, event, "widget_detached")
    )


# =============================================================================
# Reducer entrypoint
# =============================================================================

def reduce(
    state: ConnectionState,
    event: Event,
) -> tuple[ConnectionState, tuple[Command, ...]]:
    """
    Apply one event to the controller state.

    Returns the new (immutable) state and the side-effect commands the
    runtime must execute, in order.
    """
    # pylint: disable=too-many-return-statements,too-many-branches
    if isinstance(event, StartRequested):
        return _on_start_requested(state, event)
    if isinstance(event, DiagnosticsCompleted):
        return _on_diagnostics_completed(state, event)
    if isinstance(event, WorkspaceCreated):
        return _on_workspace_created(state, event)
    if isinstance(event, WorkspaceCreationFailed):
        return _on_workspace_creation_failed(state, event)
    if isinstance(event, InitializationFailed):
        return _on_initialization_failed(state, event)
    if isinstance(event, LoginRequired):
        return _on_login_required(state, event)

    if isinstance(event, SdkLogin):
        return _on_sdk_login(state, event)
    if isinstance(event, SdkLogout):
        return _on_sdk_logout(state, event)
    if isinstance(event, LoginCheckFailed):
        return _on_login_check_failed(state, event)
    if isinstance(event, ManualLoginConfirm):
        return _on_manual_login_confirm(state, event)
    if isinstance(event, ManualLoginRecheck):
        return _on_manual_login_recheck(state, event)
    if isinstance(event, LoginPollTick):
        return _on_login_poll_tick(state, event)
    if isinstance(event, LoginTimeoutWarning):
        return _on_login_timeout_warning(state, event)
    if isinstance(event, GracePeriodEnded):
        return _on_grace_period_ended(state, event)

    if isinstance(event, Reconnected):
        return _on_reconnected(state, event)
    if isinstance(event, ReconnectExhausted):
        return _on_reconnect_exhausted(state, event)

    if isinstance(event, CallStarted):
        return _on_call_started(state, event)
    if isinstance(event, CallEnded):
        return _on_call_ended(state, event)
    if isinstance(event, CallClearTimeout):
        return _on_call_clear_timeout(state, event)

    if isinstance(event, ForceRetry):
        return _on_force_retry(state, event)
    if isinstance(event, OptOut):
        return _on_opt_out(state, event)
    if isinstance(event, WidgetDetached):
        return _on_widget_detached(state, event)

    return _ignore(state, event, "unhandled_event")
