# pylint: disable=missing-module-docstring,missing-function-docstring
from dataclasses import replace

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
from orchestrator.enums.call import CallDirection, CallStatus
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.enums.phase import Phase
from orchestrator.events import (
    CallClearTimeout,
    CallEnded,
    CallStarted,
    DiagnosticsCompleted,
    EventType,
    ForceRetry,
    GracePeriodEnded,
    InitializationFailed,
    LoginCheckFailed,
    LoginPollTick,
    LoginRequired,
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
from orchestrator.reducer import (
    TIMER_CALL_CLEAR,
    TIMER_GRACE_PERIOD,
    TIMER_LOGIN_POLL,
    TIMER_LOGIN_WARNING,
    TIMER_MANUAL_RECHECK,
    reduce,
)
from orchestrator.state_dataclass import CallRecord, ConnectionState
from spec import LOGIN_POLL_MAX_ATTEMPTS, MANUAL_LOGIN_RECHECK_DELAY_MS


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def start(ts_ms: int = 0, **kwargs) -> StartRequested:
    return StartRequested(event_type=EventType.START_REQUESTED, ts_ms=ts_ms, **kwargs)


def diagnostics(ts_ms: int = 0, **kwargs) -> DiagnosticsCompleted:
    values = {"cookies_supported": True, "browser_supported": True}
    values.update(kwargs)
    return DiagnosticsCompleted(
        event_type=EventType.DIAGNOSTICS_COMPLETED, ts_ms=ts_ms, **values
    )


def init_failed(message: str, ts_ms: int = 0) -> InitializationFailed:
    return InitializationFailed(
        event_type=EventType.INITIALIZATION_FAILED, ts_ms=ts_ms, message=message
    )


def sdk_login(source: str = "sdk", ts_ms: int = 0) -> SdkLogin:
    return SdkLogin(event_type=EventType.SDK_LOGIN, ts_ms=ts_ms, source=source)


def sdk_logout(ts_ms: int = 0) -> SdkLogout:
    return SdkLogout(event_type=EventType.SDK_LOGOUT, ts_ms=ts_ms)


def manual_confirm(ts_ms: int = 0) -> ManualLoginConfirm:
    return ManualLoginConfirm(event_type=EventType.MANUAL_LOGIN_CONFIRM, ts_ms=ts_ms)


def check_failed(source: str, ts_ms: int = 0) -> LoginCheckFailed:
    return LoginCheckFailed(event_type=EventType.LOGIN_CHECK_FAILED, ts_ms=ts_ms, source=source)


def call(call_id: str = "c1", direction: CallDirection = CallDirection.INBOUND) -> CallRecord:
    return CallRecord(id=call_id, direction=direction, from_number="+15550001")


def non_logs(commands: tuple[Command, ...]) -> list[Command]:
    return [c for c in commands if not isinstance(c, LogEvent)]


def of_type(commands: tuple[Command, ...], cls: type) -> list:
    return [c for c in commands if isinstance(c, cls)]


def in_phase(phase: Phase, **kwargs) -> ConnectionState:
    return replace(ConnectionState(), phase=phase, init_attempted=True, **kwargs)


def logged_in(**kwargs) -> ConnectionState:
    return in_phase(
        Phase.LOGGED_IN,
        **{"is_connected": True, "is_workspace_ready": True, **kwargs},
    )


# ---------------------------------------------------------------------
# Start guards
# ---------------------------------------------------------------------

def test_start_requested_moves_idle_to_diagnostics():
    state, commands = reduce(ConnectionState(), start())

    assert state.phase is Phase.DIAGNOSTICS
    assert state.init_attempted is True
    assert non_logs(commands) == [RunDiagnostics()]


def test_start_requested_is_ignored_after_first_attempt():
    first, _ = reduce(ConnectionState(), start())
    second, commands = reduce(first, start(ts_ms=5))

    assert second == first
    assert non_logs(commands) == []


def test_start_requested_respects_opt_out_and_missing_credentials():
    for event in (start(opted_out=True), start(has_credentials=False)):
        state, commands = reduce(ConnectionState(), event)
        assert state.phase is Phase.IDLE
        assert state.init_attempted is False
        assert non_logs(commands) == []


# ---------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------

def test_failed_diagnostics_block_before_sdk_initialization():
    state, commands = reduce(
        in_phase(Phase.DIAGNOSTICS),
        diagnostics(
            cookies_supported=False,
            issues=("Third-party cookies are blocked",),
            remediation=("Allow cookies for the phone domain",),
        ),
    )

    assert state.phase is Phase.FAILED
    assert state.error_kind is ErrorKind.BLOCKING
    assert state.diagnostic_issues == ("Third-party cookies are blocked",)
    assert of_type(commands, InitializeSDK) == []
    notify = of_type(commands, Notify)[0]
    assert notify.variant == "destructive"
    assert "Allow cookies for the phone domain" in notify.description


def test_unsupported_browser_reports_browser_name():
    state, commands = reduce(
        in_phase(Phase.DIAGNOSTICS),
        diagnostics(browser_supported=False, browser_name="Internet Explorer"),
    )

    assert state.phase is Phase.FAILED
    assert state.error == "Internet Explorer is not supported."
    assert of_type(commands, InitializeSDK) == []


def test_configuration_advisory_does_not_block():
    state, commands = reduce(
        in_phase(Phase.DIAGNOSTICS),
        diagnostics(requires_configuration=True, browser_name="Microsoft Edge"),
    )

    assert state.phase is Phase.CREATING_WORKSPACE
    assert of_type(commands, InitializeSDK) == [InitializeSDK()]
    assert of_type(commands, Notify)[0].title == "Microsoft Edge needs configuration"


# ---------------------------------------------------------------------
# Workspace creation
# ---------------------------------------------------------------------

def test_workspace_created_checks_cached_login():
    state, commands = reduce(
        in_phase(Phase.CREATING_WORKSPACE),
        WorkspaceCreated(event_type=EventType.WORKSPACE_CREATED, ts_ms=0),
    )

    assert state.phase is Phase.WORKSPACE_READY
    assert state.is_workspace_ready is True
    assert state.is_connected is False
    assert of_type(commands, RegisterCallHandlers) == [RegisterCallHandlers()]
    assert of_type(commands, CheckCachedLogin) == [CheckCachedLogin()]


def test_workspace_creation_failure_is_fatal():
    state, _ = reduce(
        in_phase(Phase.CREATING_WORKSPACE),
        WorkspaceCreationFailed(event_type=EventType.WORKSPACE_CREATION_FAILED, ts_ms=0),
    )

    assert state.phase is Phase.FAILED
    assert state.error_kind is ErrorKind.FATAL


def test_login_required_shows_workspace_and_arms_timers():
    state, commands = reduce(
        in_phase(Phase.WORKSPACE_READY, is_workspace_ready=True),
        LoginRequired(event_type=EventType.LOGIN_REQUIRED, ts_ms=0),
    )

    assert state.phase is Phase.NEEDS_LOGIN
    assert state.show_login_prompt is True
    assert of_type(commands, ShowWorkspace) == [ShowWorkspace(for_login=True)]
    timers = {c.timer_id for c in of_type(commands, StartTimer)}
    assert timers == {TIMER_LOGIN_POLL, TIMER_LOGIN_WARNING}


# ---------------------------------------------------------------------
# Initialization error classification
# ---------------------------------------------------------------------

def test_blocking_error_fails_without_login_prompt():
    state, commands = reduce(
        in_phase(Phase.CREATING_WORKSPACE),
        init_failed("net::ERR_BLOCKED_BY_CLIENT"),
    )

    assert state.phase is Phase.FAILED
    assert state.error_kind is ErrorKind.BLOCKING
    assert state.show_login_prompt is False
    assert of_type(commands, ShowWorkspace) == []


def test_auth_error_asks_for_login():
    state, commands = reduce(
        in_phase(Phase.CREATING_WORKSPACE),
        init_failed("401 Unauthorized"),
    )

    assert state.phase is Phase.NEEDS_LOGIN
    assert state.error_kind is ErrorKind.AUTH_REQUIRED
    assert state.show_login_prompt is True
    assert of_type(commands, ShowWorkspace) == [ShowWorkspace(for_login=True)]


def test_unknown_error_fails_but_still_offers_login():
    state, commands = reduce(
        in_phase(Phase.CREATING_WORKSPACE),
        init_failed("widget exploded"),
    )

    assert state.phase is Phase.FAILED
    assert state.error_kind is ErrorKind.UNKNOWN
    assert state.show_login_prompt is True
    assert of_type(commands, ShowWorkspace) == [ShowWorkspace(for_login=True)]

    retry_state, retry_commands = reduce(state, manual_confirm())
    assert retry_state.phase is Phase.LOGGING_IN
    assert CheckLoginStatus(source="manual") in retry_commands


def test_manual_login_is_not_offered_after_blocking_failure():
    blocked = in_phase(Phase.FAILED, error_kind=ErrorKind.BLOCKING)

    state, commands = reduce(blocked, manual_confirm())

    assert state == blocked
    assert non_logs(commands) == []


def test_sdk_login_is_not_accepted_after_blocking_failure():
    blocked = in_phase(Phase.FAILED, error="Third-party cookies are blocked.", error_kind=ErrorKind.BLOCKING)

    state, commands = reduce(blocked, sdk_login())

    assert state == blocked
    assert non_logs(commands) == []
    assert commands[0].event["details"]["reason"] == "login_not_available"


def test_sdk_login_recovers_from_unknown_failure():
    failed = in_phase(Phase.FAILED, error="widget exploded", error_kind=ErrorKind.UNKNOWN)

    state, _ = reduce(failed, sdk_login())

    assert state.phase is Phase.LOGGED_IN
    assert state.is_connected is True
    assert state.error_kind is None


# ---------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------

def test_sdk_login_connects_and_starts_grace_period():
    state, commands = reduce(
        in_phase(Phase.NEEDS_LOGIN, is_workspace_ready=True, show_login_prompt=True),
        sdk_login(),
    )

    assert state.phase is Phase.LOGGED_IN
    assert state.is_connected is True
    assert state.in_grace_period is True
    assert state.show_login_prompt is False

    cancelled = {c.timer_id for c in of_type(commands, CancelTimer)}
    assert cancelled == {TIMER_LOGIN_POLL, TIMER_LOGIN_WARNING, TIMER_MANUAL_RECHECK}
    assert SetSdkLoginStatus(logged_in=True) in commands
    assert ResetReconnectAttempts() in commands
    assert PersistConnectionMetadata() in commands
    assert ShowWorkspace(for_login=False) in commands
    assert [c.timer_id for c in of_type(commands, StartTimer)] == [TIMER_GRACE_PERIOD]


def test_sdk_login_before_start_is_ignored():
    state, commands = reduce(ConnectionState(), sdk_login())

    assert state == ConnectionState()
    assert non_logs(commands) == []


def test_duplicate_login_while_connected_is_ignored():
    connected = logged_in()
    state, commands = reduce(connected, sdk_login(source="poll"))

    assert state == connected
    assert non_logs(commands) == []


def test_logout_during_grace_period_is_ignored():
    connected, _ = reduce(in_phase(Phase.NEEDS_LOGIN), sdk_login())
    assert connected.in_grace_period is True

    state, commands = reduce(connected, sdk_logout())

    assert state == connected
    assert state.is_connected is True
    assert of_type(commands, RequestReconnect) == []


def test_logout_after_grace_period_requests_reconnect():
    connected, _ = reduce(in_phase(Phase.NEEDS_LOGIN), sdk_login())
    settled, _ = reduce(
        connected,
        GracePeriodEnded(event_type=EventType.GRACE_PERIOD_ENDED, ts_ms=30_000),
    )

    state, commands = reduce(settled, sdk_logout(ts_ms=31_000))

    assert state.is_connected is False
    assert state.is_reconnecting is True
    assert state.error_kind is ErrorKind.TRANSIENT
    assert of_type(commands, RequestReconnect) == [RequestReconnect(source="sdk_logout")]


def test_logout_without_connection_asks_for_login_again():
    state, commands = reduce(
        in_phase(Phase.WORKSPACE_READY, is_workspace_ready=True),
        sdk_logout(),
    )

    assert state.phase is Phase.NEEDS_LOGIN
    assert state.show_login_prompt is True
    assert SetSdkLoginStatus(logged_in=False) in commands
    assert ClearConnectionMetadata() in commands
    assert ShowWorkspace(for_login=True) in commands


# ---------------------------------------------------------------------
# Manual login confirmation
# ---------------------------------------------------------------------

def test_failed_manual_check_schedules_single_recheck():
    logging_in, _ = reduce(in_phase(Phase.NEEDS_LOGIN), manual_confirm())
    assert logging_in.phase is Phase.LOGGING_IN

    pending, commands = reduce(logging_in, check_failed("manual"))

    assert pending.manual_recheck_pending is True
    timers = of_type(commands, StartTimer)
    assert [(t.timer_id, t.duration_ms) for t in timers] == [
        (TIMER_MANUAL_RECHECK, MANUAL_LOGIN_RECHECK_DELAY_MS)
    ]
    assert of_type(commands, Notify)[0].title == "Checking login status..."

    rechecking, commands = reduce(
        pending,
        ManualLoginRecheck(event_type=EventType.MANUAL_LOGIN_RECHECK, ts_ms=2_000),
    )
    assert commands == (CheckLoginStatus(source="manual_recheck"),)

    final, commands = reduce(rechecking, check_failed("manual_recheck"))
    assert final.phase is Phase.NEEDS_LOGIN
    notify = of_type(commands, Notify)[0]
    assert notify.title == "Not logged in yet"
    assert notify.variant == "destructive"


def test_negative_poll_result_changes_nothing():
    waiting = in_phase(Phase.NEEDS_LOGIN, login_poll_attempts=3)
    state, commands = reduce(waiting, check_failed("poll"))

    assert state == waiting
    assert non_logs(commands) == []


def test_login_poll_stops_rearming_at_max_attempts():
    waiting = in_phase(Phase.NEEDS_LOGIN, login_poll_attempts=LOGIN_POLL_MAX_ATTEMPTS - 2)
    tick = LoginPollTick(event_type=EventType.LOGIN_POLL_TICK, ts_ms=0)

    state, commands = reduce(waiting, tick)
    assert CheckLoginStatus(source="poll") in commands
    assert len(of_type(commands, StartTimer)) == 1

    state, commands = reduce(state, tick)
    assert state.login_poll_attempts == LOGIN_POLL_MAX_ATTEMPTS
    assert CheckLoginStatus(source="poll") in commands
    assert of_type(commands, StartTimer) == []


# ---------------------------------------------------------------------
# Reconnection outcomes
# ---------------------------------------------------------------------

def test_reconnected_restores_logged_in():
    lost = logged_in(is_connected=False, is_reconnecting=True, error_kind=ErrorKind.TRANSIENT)
    state, commands = reduce(
        lost, Reconnected(event_type=EventType.RECONNECTED, ts_ms=0, attempts=2)
    )

    assert state.phase is Phase.LOGGED_IN
    assert state.is_connected is True
    assert state.is_reconnecting is False
    assert state.error_kind is None
    assert PersistConnectionMetadata() in commands


def test_reconnect_exhausted_is_fatal():
    lost = logged_in(is_connected=False, is_reconnecting=True)
    state, commands = reduce(
        lost, ReconnectExhausted(event_type=EventType.RECONNECT_EXHAUSTED, ts_ms=0, attempts=5)
    )

    assert state.phase is Phase.FAILED
    assert state.error_kind is ErrorKind.FATAL
    assert state.error == "Unable to reconnect to the phone system. Please reload the page."
    assert of_type(commands, Notify)[0].variant == "destructive"


# ---------------------------------------------------------------------
# Calls
# ---------------------------------------------------------------------

def test_call_lifecycle_tracks_and_clears_current_call():
    started, commands = reduce(
        logged_in(), CallStarted(event_type=EventType.CALL_STARTED, ts_ms=0, call=call())
    )
    assert started.current_call == call()
    assert SyncCallRecord(call=call(), stage="started") in commands

    ended, commands = reduce(
        started, CallEnded(event_type=EventType.CALL_ENDED, ts_ms=10, call=call())
    )
    assert ended.current_call is not None
    assert ended.current_call.status is CallStatus.COMPLETED
    assert [t.timer_id for t in of_type(commands, StartTimer)] == [TIMER_CALL_CLEAR]
    assert SyncCallRecord(call=call(), stage="ended") in commands

    cleared, _ = reduce(
        ended, CallClearTimeout(event_type=EventType.CALL_CLEAR_TIMEOUT, ts_ms=5_010)
    )
    assert cleared.current_call is None


def test_new_call_cancels_pending_clear():
    _, commands = reduce(
        logged_in(current_call=call("old")),
        CallStarted(event_type=EventType.CALL_STARTED, ts_ms=0, call=call("new")),
    )
    assert CancelTimer(timer_id=TIMER_CALL_CLEAR) in commands


# ---------------------------------------------------------------------
# User control
# ---------------------------------------------------------------------

def test_force_retry_resets_and_restarts():
    failed = in_phase(Phase.FAILED, error="boom", error_kind=ErrorKind.FATAL)
    state, commands = reduce(failed, ForceRetry(event_type=EventType.FORCE_RETRY, ts_ms=0))

    assert state == ConnectionState()
    assert CancelReconnect() in commands
    assert ResetReconnectAttempts() in commands
    assert RestartIntegration() in commands


def test_force_retry_outside_failed_is_ignored():
    state, commands = reduce(logged_in(), ForceRetry(event_type=EventType.FORCE_RETRY, ts_ms=0))

    assert state == logged_in()
    assert non_logs(commands) == []


def test_opt_out_tears_down_but_keeps_start_guard():
    state, commands = reduce(logged_in(), OptOut(event_type=EventType.OPT_OUT, ts_ms=0))

    assert state.phase is Phase.IDLE
    assert state.is_connected is False
    assert state.init_attempted is True
    assert CancelReconnect() in commands
    assert PersistOptOut(opted_out=True) in commands
    assert HideWorkspace() in commands
    assert DisconnectSDK() in commands


def test_widget_detached_drops_sdk_session_and_allows_fresh_start():
    before = logged_in(in_grace_period=True, current_call=call())

    state, commands = reduce(before, WidgetDetached(event_type=EventType.WIDGET_DETACHED, ts_ms=0))

    assert state == ConnectionState()
    assert state.is_connected is False
    assert CancelTimer(timer_id=TIMER_GRACE_PERIOD) in commands
    assert CancelReconnect() in commands
    assert ResetReconnectAttempts() in commands
    assert DisconnectSDK() in commands

    restarted, _ = reduce(state, start(has_credentials=True))
    assert restarted.phase is Phase.DIAGNOSTICS


def test_widget_detached_before_start_is_ignored():
    state, commands = reduce(
        ConnectionState(),
        WidgetDetached(event_type=EventType.WIDGET_DETACHED, ts_ms=0),
    )

    assert state == ConnectionState()
    assert non_logs(commands) == []


def test_is_connected_never_true_in_idle_or_failed():
    events = [
        start(),
        diagnostics(),
        WorkspaceCreated(event_type=EventType.WORKSPACE_CREATED, ts_ms=0),
        LoginRequired(event_type=EventType.LOGIN_REQUIRED, ts_ms=0),
        sdk_login(),
        GracePeriodEnded(event_type=EventType.GRACE_PERIOD_ENDED, ts_ms=0),
        sdk_logout(),
        ReconnectExhausted(event_type=EventType.RECONNECT_EXHAUSTED, ts_ms=0),
        ForceRetry(event_type=EventType.FORCE_RETRY, ts_ms=0),
    ]

    state = ConnectionState()
    for event in events:
        state, _ = reduce(state, event)
        if state.phase in (Phase.IDLE, Phase.FAILED):
            assert state.is_connected is False
