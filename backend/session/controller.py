"""
Call integration controller.

Application-lifetime facade over the runtime: wires the SDK, stores and
client environment, exposes a read-only state accessor, user actions and
call controls, and buffers notifications for the UI.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Awaitable, Callable
from uuid import uuid4

from adapters.sdk.widget_bridge import WidgetBridge
from calls.record_store import InMemoryCallRecordStore
from config import AppConfig
from observability.logger import log_event, now_ms
from orchestrator.commands import Notify
from orchestrator.events import EventType, ForceRetry, ManualLoginConfirm, OptOut, WidgetDetached
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import (
    CallRecordStore,
    ClientEnvironmentProtocol,
    ContainerLookup,
    KeyValueStore,
    RuntimeExecutionContext,
    TelephonySdkProtocol,
)
from orchestrator.state_dataclass import ConnectionState
from session.storage import InMemoryStore, JsonFileStore


MAX_PENDING_NOTIFICATIONS = 50

StateListener = Callable[[ConnectionState], None]


def _new_controller_id() -> str:
    return f"phone_{uuid4().hex[:12]}"


class CallIntegrationController:
    """
    One controller per application.

    By default the SDK, container and client environment are all provided
    by a WidgetBridge; tests inject fakes instead.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        sdk: TelephonySdkProtocol | None = None,
        environment: ClientEnvironmentProtocol | None = None,
        find_container: ContainerLookup | None = None,
        local_store: KeyValueStore | None = None,
        session_store: KeyValueStore | None = None,
        call_store: CallRecordStore | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], int] = now_ms,
        controller_id: str | None = None,
    ) -> None:
        self.controller_id = controller_id or _new_controller_id()
        self._config = config
        self._clock = clock

        self.bridge: WidgetBridge | None = None
        if sdk is None:
            self.bridge = WidgetBridge(controller_id=self.controller_id)
            sdk = self.bridge
            environment = environment or self.bridge
            find_container = find_container or self.bridge.find_container
        if environment is None or find_container is None:
            raise ValueError("environment and find_container are required with a custom sdk")

        if local_store is None:
            local_store = (
                JsonFileStore(config.phone_state_file)
                if config.phone_state_file
                else InMemoryStore()
            )

        self.sdk = sdk
        self.local_store = local_store
        self.session_store = session_store or InMemoryStore()
        self.call_store = call_store or InMemoryCallRecordStore()

        self._notifications: deque[dict[str, Any]] = deque(maxlen=MAX_PENDING_NOTIFICATIONS)
        self._listeners: list[StateListener] = []

        self.runtime = Runtime(
            context=RuntimeExecutionContext(
                controller_id=self.controller_id,
                sdk=sdk,
                environment=environment,
                local_store=self.local_store,
                session_store=self.session_store,
                api_id=config.aircall_api_id or "",
                api_token=config.aircall_api_token or "",
                domain_name=config.aircall_domain_name or "",
                organization_id=config.organization_id,
            ),
            find_container=find_container,
            call_store=self.call_store,
            notify=self._enqueue_notification,
            on_state_change=self._on_state_change,
            sleep=sleep,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self.runtime.state

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready view of the controller state."""
        s = self.runtime.state
        call = s.current_call
        return {
            "controller_id": self.controller_id,
            "phase": s.phase.value,
            "is_connected": s.is_connected,
            "is_workspace_ready": s.is_workspace_ready,
            "is_reconnecting": s.is_reconnecting,
            "show_login_prompt": s.show_login_prompt,
            "in_grace_period": s.in_grace_period,
            "diagnostic_issues": list(s.diagnostic_issues),
            "current_call": None if call is None else {
                "id": call.id,
                "direction": call.direction.value,
                "from_number": call.from_number,
                "to_number": call.to_number,
                "status": call.status.value,
            },
            "error": s.error,
            "error_kind": s.error_kind.value if s.error_kind else None,
            "workspace_visible": self.runtime.visibility.is_visible(),
            "reconnect_attempts": self.runtime.broker.attempts,
        }

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called with every new state. Returns unsubscribe."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def drain_notifications(self) -> tuple[dict[str, Any], ...]:
        """Atomically drain pending notifications (FIFO)."""
        out = tuple(self._notifications)
        self._notifications.clear()
        return out

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Bring the integration up. Completes when initialization settles."""
        if not self._config.phone_enabled:
            log_event({
                "event_type": "phone_disabled",
                "controller_id": self.controller_id,
            })
            return
        await self.runtime.request_start()

    def request_start(self) -> None:
        """Non-blocking start, for callers that must keep serving the widget."""
        if not self._config.phone_enabled:
            return
        self.runtime.request_start_nowait()

    async def shutdown(self) -> None:
        await self.runtime.shutdown()

    async def detach_widget(self) -> None:
        """The browser shim disconnected; a reconnecting shim initializes from scratch."""
        if self.bridge is not None:
            self.bridge.detach()
        await self.runtime.handle_event(
            WidgetDetached(event_type=EventType.WIDGET_DETACHED, ts_ms=self._clock())
        )

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def show_workspace(self, *, for_login: bool = False) -> bool:
        return await self.runtime.visibility.show(for_login=for_login)

    async def hide_workspace(self) -> bool:
        return await self.runtime.visibility.hide()

    async def confirm_login(self) -> None:
        await self.runtime.handle_event(
            ManualLoginConfirm(event_type=EventType.MANUAL_LOGIN_CONFIRM, ts_ms=self._clock())
        )

    async def force_retry(self) -> None:
        await self.runtime.handle_event(
            ForceRetry(event_type=EventType.FORCE_RETRY, ts_ms=self._clock())
        )

    async def opt_out(self) -> None:
        await self.runtime.handle_event(
            OptOut(event_type=EventType.OPT_OUT, ts_ms=self._clock())
        )

    async def request_reconnect(self, source: str = "manual") -> bool:
        return await self.runtime.broker.request_reconnect(source)

    # ------------------------------------------------------------------
    # Call controls (never retried)
    # ------------------------------------------------------------------

    async def answer_call(self) -> bool:
        return await self._call_action("answer", self.sdk.answer_call)

    async def reject_call(self) -> bool:
        return await self._call_action("reject", self.sdk.reject_call)

    async def hang_up(self) -> bool:
        return await self._call_action("hang_up", self.sdk.hang_up)

    async def dial_number(self, phone_number: str) -> bool:
        async def _dial() -> None:
            await self.sdk.dial_number(phone_number)
        return await self._call_action("dial", _dial)

    async def _call_action(self, action: str, fn: Callable[[], Awaitable[None]]) -> bool:
        try:
            await fn()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "call_action_failed",
                "controller_id": self.controller_id,
                "action": action,
                "error": str(exc),
            })
            self._enqueue_notification(
                Notify(
                    title="Call action failed",
                    description="Use the phone workspace directly to manage this call.",
                    variant="destructive",
                )
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Runtime callbacks
    # ------------------------------------------------------------------

    def _enqueue_notification(self, note: Notify) -> None:
        self._notifications.append({
            "title": note.title,
            "description": note.description,
            "variant": note.variant,
            "duration_ms": note.duration_ms,
            "ts_ms": self._clock(),
        })

    def _on_state_change(self, _prev: ConnectionState, new: ConnectionState) -> None:
        for listener in list(self._listeners):
            try:
                listener(new)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "event_type": "state_listener_failed",
                    "controller_id": self.controller_id,
                    "error": str(exc),
                })
