"""
Runtime execution shell for a single phone integration controller.

Responsibilities:
- Own controller state
- Call pure reducer
- Execute commands with side effects (diagnostics, SDK, stores, workspace)
- Schedule and cancel timers
- Convert timer expiry and SDK callbacks into events
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Coroutine

from calls.event_bridge import CallEventBridge
from calls.sync import CallSyncError, CallSyncService
from diagnostics.report import run_diagnostics
from observability.logger import log_event, now_ms
from observability.metrics import timed
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
from orchestrator.enums.call import CallDirection
from orchestrator.events import (
    CallClearTimeout,
    CallEnded,
    CallStarted,
    DiagnosticsCompleted,
    Event,
    EventType,
    GracePeriodEnded,
    InitializationFailed,
    LoginCheckFailed,
    LoginPollTick,
    LoginRequired,
    LoginTimeoutWarning,
    ManualLoginRecheck,
    SdkLogin,
    SdkLogout,
    StartRequested,
    WorkspaceCreated,
    WorkspaceCreationFailed,
)
from orchestrator.reducer import reduce
from orchestrator.runtime_context import (
    CallRecordStore,
    ContainerLookup,
    RuntimeExecutionContext,
    SdkSettings,
    Unsubscribe,
)
from orchestrator.state_dataclass import CallRecord, ConnectionState
from reconnect.broker import ReconnectionBroker
from session.storage import (
    clear_connection_metadata,
    has_recent_connection,
    is_opted_out,
    persist_connection_metadata,
    set_opted_out,
)
from spec import CALL_EVENTS, SDK_INITIALIZE_TIMEOUT_MS
from workspace.visibility import WorkspaceVisibilityManager


_TIMEOUT_EVENTS: dict[EventType, type[Event]] = {
    EventType.LOGIN_POLL_TICK: LoginPollTick,
    EventType.LOGIN_TIMEOUT_WARNING: LoginTimeoutWarning,
    EventType.MANUAL_LOGIN_RECHECK: ManualLoginRecheck,
    EventType.GRACE_PERIOD_ENDED: GracePeriodEnded,
    EventType.CALL_CLEAR_TIMEOUT: CallClearTimeout,
}


class Runtime:
    """
    Runtime execution boundary for one controller.

    Guarantees:
    - Reducer is called exactly once per incoming event
    - State is updated before any side effect of that event executes
    - Commands execute in reducer-emitted order
    - Timers and SDK callbacks re-enter through handle_event()

    SDK callbacks never read or write state; they only build events.
    """

    def __init__(
        self,
        *,
        context: RuntimeExecutionContext,
        find_container: ContainerLookup,
        call_store: CallRecordStore,
        event_bridge: CallEventBridge | None = None,
        initial_state: ConnectionState | None = None,
        notify: Callable[[Notify], None] | None = None,
        on_state_change: Callable[[ConnectionState, ConnectionState], None] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], int] = now_ms,
        initialize_timeout_ms: int = SDK_INITIALIZE_TIMEOUT_MS,
    ) -> None:
        self._ctx = context
        self._state = initial_state or ConnectionState()
        self._notify = notify
        self._on_state_change = on_state_change
        self._clock = clock
        self._initialize_timeout_ms = initialize_timeout_ms

        self._timers: dict[str, asyncio.Task[None]] = {}
        self._background: set[asyncio.Task[Any]] = set()
        self._reconnect_task: asyncio.Task[Any] | None = None
        self._call_unsubscribers: list[Unsubscribe] = []
        self._abort: asyncio.Event | None = None
        self._closed = False

        self.event_bridge = event_bridge or CallEventBridge(clock=clock)
        self.call_sync = CallSyncService(
            store=call_store,
            organization_id=context.organization_id,
            controller_id=context.controller_id,
        )
        self.visibility = WorkspaceVisibilityManager(
            sdk=context.sdk,
            find_container=find_container,
            store=context.local_store,
            is_workspace_ready=lambda: self._state.is_workspace_ready,
            controller_id=context.controller_id,
            sleep=sleep,
        )
        self.broker = ReconnectionBroker(
            sdk=context.sdk,
            reinitialize=self._initialize_sdk,
            store=context.local_store,
            dispatch=self.handle_event,
            controller_id=context.controller_id,
            sleep=sleep,
            clock=clock,
        )

    @property
    def state(self) -> ConnectionState:
        """Current immutable controller state. Read-only for consumers."""
        return self._state

    # ------------------------------------------------------------------
    # Event entry points
    # ------------------------------------------------------------------

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the reducer.

        This method is the *only* entry point for events affecting
        controller state. All event sources converge here:
        - Controller API (start, retry, opt-out, manual login)
        - SDK callbacks (login, logout, call events)
        - Timers and the reconnection broker
        """
        if self._closed:
            log_event({
                "event_type": "event_dropped_after_shutdown",
                "controller_id": self._ctx.controller_id,
                "dropped_event_type": event.event_type.value,
            })
            return

        prev_state = self._state
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        if new_state != prev_state and self._on_state_change is not None:
            self._on_state_change(prev_state, new_state)

        for cmd in commands:
            await self._execute_command(cmd)

    def post(self, event: Event) -> None:
        """Schedule handle_event() from synchronous callbacks."""
        self._spawn(self.handle_event(event))

    async def request_start(self) -> None:
        await self.handle_event(self._start_requested())

    def request_start_nowait(self) -> None:
        self.post(self._start_requested())

    async def shutdown(self) -> None:
        """
        Cancel every timer and background task and detach SDK handlers.

        Events arriving afterwards are dropped.
        """
        self._closed = True

        for timer_id in list(self._timers.keys()):
            self._cancel_timer(timer_id)

        await self._cancel_reconnect()

        if self._abort is not None:
            self._abort.set()

        pending = [t for t in self._background if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self._unregister_call_handlers()

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""
        # pylint: disable=too-many-branches,too-many-statements
        ctx = self._ctx

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "controller_id": ctx.controller_id,
            })

        elif isinstance(cmd, RunDiagnostics):
            with timed("diagnostics", controller_id=ctx.controller_id, phase=self._state.phase.value):
                report = await run_diagnostics(ctx.environment)

            await self.handle_event(
                DiagnosticsCompleted(
                    event_type=EventType.DIAGNOSTICS_COMPLETED,
                    ts_ms=self._clock(),
                    cookies_supported=report.cookies.supported,
                    browser_supported=report.browser.is_supported,
                    requires_configuration=report.browser.requires_configuration,
                    issues=report.issues,
                    browser_name=report.browser.name,
                    recommendation=report.browser.recommendation,
                    cookie_details=report.cookies.details,
                    remediation=report.remediation,
                )
            )

        elif isinstance(cmd, InitializeSDK):
            await self.handle_event(await self._run_initialize())

        elif isinstance(cmd, RegisterCallHandlers):
            self._register_call_handlers()

        elif isinstance(cmd, CheckCachedLogin):
            await self.handle_event(await self._check_cached_login())

        elif isinstance(cmd, RestartIntegration):
            await self._cancel_reconnect()
            set_opted_out(ctx.session_store, False)
            await self._disconnect_sdk()
            await self.handle_event(self._start_requested())

        elif isinstance(cmd, DisconnectSDK):
            await self._disconnect_sdk()

        elif isinstance(cmd, CheckLoginStatus):
            logged_in = await self._login_status(cmd.source)
            if logged_in:
                event: Event = SdkLogin(
                    event_type=EventType.SDK_LOGIN,
                    ts_ms=self._clock(),
                    source=cmd.source,
                )
            else:
                event = LoginCheckFailed(
                    event_type=EventType.LOGIN_CHECK_FAILED,
                    ts_ms=self._clock(),
                    source=cmd.source,
                )
            await self.handle_event(event)

        elif isinstance(cmd, SetSdkLoginStatus):
            try:
                if cmd.logged_in:
                    ctx.sdk.set_login_status(True)
                else:
                    ctx.sdk.clear_login_status()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self._log("sdk_login_status_write_failed", {"error": str(exc)})

        elif isinstance(cmd, PersistConnectionMetadata):
            persist_connection_metadata(
                ctx.local_store,
                now_ms=self._clock(),
                attempts=self.broker.attempts,
            )

        elif isinstance(cmd, ClearConnectionMetadata):
            clear_connection_metadata(ctx.local_store)

        elif isinstance(cmd, PersistOptOut):
            set_opted_out(ctx.session_store, cmd.opted_out)

        elif isinstance(cmd, ShowWorkspace):
            await self.visibility.show(for_login=cmd.for_login)

        elif isinstance(cmd, HideWorkspace):
            await self.visibility.hide()

        elif isinstance(cmd, RequestReconnect):
            if self._reconnect_task is not None and not self._reconnect_task.done():
                self._log("reconnect_skipped", {"source": cmd.source, "reason": "in_progress"})
            else:
                self._reconnect_task = self._spawn(self.broker.request_reconnect(cmd.source))

        elif isinstance(cmd, CancelReconnect):
            await self._cancel_reconnect()

        elif isinstance(cmd, ResetReconnectAttempts):
            self.broker.reset()

        elif isinstance(cmd, SyncCallRecord):
            try:
                self.call_sync.sync(cmd.call, cmd.stage)
            except CallSyncError:
                self._emit_notification(
                    Notify(
                        title="Call sync failed",
                        description="Unable to save the call: no organization is configured.",
                        variant="destructive",
                    )
                )

        elif isinstance(cmd, Notify):
            self._emit_notification(cmd)

        elif isinstance(cmd, StartTimer):
            self._start_timer(
                timer_id=cmd.timer_id,
                duration_ms=cmd.duration_ms,
                timeout_event_type=cmd.timeout_event_type,
            )

        elif isinstance(cmd, CancelTimer):
            self._cancel_timer(cmd.timer_id)

        else:
            self._log("command_not_handled", {"command_type": type(cmd).__name__})

    # ------------------------------------------------------------------
    # SDK helpers
    # ------------------------------------------------------------------

    def _sdk_settings(self) -> SdkSettings:
        return SdkSettings(
            api_id=self._ctx.api_id,
            api_token=self._ctx.api_token,
            domain_name=self._ctx.domain_name,
            on_login=self._on_sdk_login,
            on_logout=self._on_sdk_logout,
        )

    async def _initialize_sdk(self) -> None:
        """
        Call SDK initialize() once, bounded by the initialize timeout.

        Raises on failure. A timeout raises TimeoutError with a message
        that classifies as blocking.
        """
        self._abort = asyncio.Event()
        try:
            await asyncio.wait_for(
                self._ctx.sdk.initialize(self._sdk_settings(), self._abort),
                timeout=self._initialize_timeout_ms / 1000.0,
            )
        except asyncio.TimeoutError as exc:
            self._abort.set()
            raise TimeoutError(
                f"SDK initialization timeout after {self._initialize_timeout_ms}ms"
            ) from exc

    async def _run_initialize(self) -> Event:
        ts = self._clock()
        try:
            with timed("sdk_initialize", controller_id=self._ctx.controller_id, phase=self._state.phase.value):
                await self._initialize_sdk()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            return InitializationFailed(
                event_type=EventType.INITIALIZATION_FAILED,
                ts_ms=ts,
                message=str(exc) or type(exc).__name__,
            )

        if self._ctx.sdk.is_workspace_created():
            return WorkspaceCreated(event_type=EventType.WORKSPACE_CREATED, ts_ms=self._clock())
        return WorkspaceCreationFailed(event_type=EventType.WORKSPACE_CREATION_FAILED, ts_ms=self._clock())

    async def _login_status(self, source: str) -> bool:
        try:
            return bool(await self._ctx.sdk.get_login_status())
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._log("login_status_check_failed", {"source": source, "error": str(exc)})
            return False

    async def _check_cached_login(self) -> Event:
        cached = await self._login_status("cached")
        recent = has_recent_connection(self._ctx.local_store, now_ms=self._clock())

        if cached and recent:
            return SdkLogin(event_type=EventType.SDK_LOGIN, ts_ms=self._clock(), source="cached")

        reason = "no_cached_login"
        if cached:
            # cached login older than the recent-connection window
            reason = "stale_cached_login"
            try:
                self._ctx.sdk.clear_login_status()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self._log("sdk_login_status_write_failed", {"error": str(exc)})
            clear_connection_metadata(self._ctx.local_store)

        return LoginRequired(event_type=EventType.LOGIN_REQUIRED, ts_ms=self._clock(), reason=reason)

    async def _cancel_reconnect(self) -> None:
        """Stop the broker task, including a pending backoff sleep or re-initialize."""
        task = self._reconnect_task
        self._reconnect_task = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        if self._abort is not None:
            self._abort.set()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        self._log("reconnect_cancelled", {"attempts": self.broker.attempts})

    async def _disconnect_sdk(self) -> None:
        self._unregister_call_handlers()
        sdk = self._ctx.sdk
        if not sdk.is_ready():
            return
        try:
            await sdk.disconnect()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._log("sdk_disconnect_failed", {"error": str(exc)})

    def _start_requested(self) -> StartRequested:
        return StartRequested(
            event_type=EventType.START_REQUESTED,
            ts_ms=self._clock(),
            opted_out=is_opted_out(self._ctx.session_store),
            has_credentials=self._ctx.has_credentials,
        )

    # ------------------------------------------------------------------
    # SDK callbacks (dispatch only)
    # ------------------------------------------------------------------

    def _on_sdk_login(self) -> None:
        self.post(SdkLogin(event_type=EventType.SDK_LOGIN, ts_ms=self._clock(), source="sdk"))

    def _on_sdk_logout(self) -> None:
        self.post(SdkLogout(event_type=EventType.SDK_LOGOUT, ts_ms=self._clock()))

    def _register_call_handlers(self) -> None:
        if self._call_unsubscribers:
            return
        for name in CALL_EVENTS:
            self._call_unsubscribers.append(
                self._ctx.sdk.on(name, self._call_handler(name))
            )

    def _unregister_call_handlers(self) -> None:
        while self._call_unsubscribers:
            unsubscribe = self._call_unsubscribers.pop()
            try:
                unsubscribe()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self._log("call_handler_unsubscribe_failed", {"error": str(exc)})

    def _call_handler(self, name: str) -> Callable[[dict[str, Any]], None]:
        def _handle(data: dict[str, Any]) -> None:
            self.on_call_event(name, data)
        return _handle

    def on_call_event(self, name: str, data: dict[str, Any]) -> None:
        """Translate a widget call event into CallStarted / CallEnded."""
        direction = CallDirection.OUTBOUND if name == "outgoing_call" else CallDirection.INBOUND
        call = CallRecord.from_sdk(data or {}, direction=direction)

        if not self.event_bridge.process_sdk_event(name, call.id):
            return

        ts = self._clock()
        if name == "call_ended":
            self.post(CallEnded(event_type=EventType.CALL_ENDED, ts_ms=ts, call=call))
        else:
            self.post(CallStarted(event_type=EventType.CALL_STARTED, ts_ms=ts, call=call))

    # ------------------------------------------------------------------
    # Timer management
    # ------------------------------------------------------------------

    def _start_timer(
        self,
        *,
        timer_id: str,
        duration_ms: int,
        timeout_event_type: EventType,
    ) -> None:
        """
        Start or replace a timer that emits a timeout event.

        Timer tasks re-enter handle_event() when they expire,
        maintaining the single event entry point invariant.
        """
        self._cancel_timer(timer_id)

        async def _timer_task() -> None:
            try:
                await asyncio.sleep(duration_ms / 1000.0)
                self._timers.pop(timer_id, None)
                event = self._construct_timeout_event(
                    timer_id=timer_id,
                    timeout_event_type=timeout_event_type,
                )
                await self.handle_event(event)
            except asyncio.CancelledError:
                return

        self._timers[timer_id] = asyncio.create_task(_timer_task())

    def _cancel_timer(self, timer_id: str) -> None:
        """Idempotent: safe to call even if the timer doesn't exist."""
        task = self._timers.pop(timer_id, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _construct_timeout_event(
        self,
        *,
        timer_id: str,
        timeout_event_type: EventType,
    ) -> Event:
        event_cls = _TIMEOUT_EVENTS.get(timeout_event_type)
        if event_cls is None:
            # reducer only emits the timer types above
            raise ValueError(
                f"Unknown timeout event type: {timeout_event_type} "
                f"for timer_id: {timer_id}"
            )
        return event_cls(event_type=timeout_event_type, ts_ms=self._clock())

    def active_timers(self) -> tuple[str, ...]:
        return tuple(sorted(self._timers))

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every background task spawned so far has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _emit_notification(self, note: Notify) -> None:
        self._log("notification", {
            "title": note.title,
            "variant": note.variant,
        })
        if self._notify is not None:
            self._notify(note)

    def _log(self, event_type: str, details: dict[str, Any]) -> None:
        log_event({
            "event_type": event_type,
            "controller_id": self._ctx.controller_id,
            "phase": self._state.phase.value,
            "details": details,
        })
