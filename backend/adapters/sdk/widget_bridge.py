"""
Widget bridge adapter.

The call-control widget runs in the browser. A thin shim there relays
widget callbacks, DOM facts and environment probes over a WebSocket and
applies the commands this bridge sends back.

The bridge implements, on the server side:
- TelephonySdkProtocol (initialize, login status, workspace, calls)
- the workspace container (class list + inline style, relayed)
- ClientEnvironmentProtocol (user agent, Brave flag, cookie probe)

Inbound (shim -> server), JSON with a "type":
    HELLO                {user_agent, is_brave, cookie_probe, logged_in, container_mounted}
    SDK_INITIALIZED      {workspace_created}
    SDK_ERROR            {message}
    LOGIN / LOGOUT       {}
    CALL_EVENT           {name, call}
    CONTAINER_MOUNTED    {classes}
    CONTAINER_UNMOUNTED  {}

Outbound (server -> shim):
    SDK_INITIALIZE, SDK_ABORT, SDK_DISCONNECT, SET_LOGIN_STATUS,
    WORKSPACE_SHOW, WORKSPACE_HIDE, CONTAINER_UPDATE,
    CALL_ANSWER, CALL_REJECT, CALL_HANGUP, CALL_DIAL
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from observability.logger import log_event, now_ms
from orchestrator.errors import SdkInitializationError, SdkNotReadyError
from orchestrator.runtime_context import CallHandler, SdkSettings, Unsubscribe
from spec import CALL_EVENTS, WORKSPACE_CONTAINER_ID, WORKSPACE_HIDDEN_CLASS


# ------------------------------------------------------------------
# Container
# ------------------------------------------------------------------

class BridgedContainer:
    """Mirror of the workspace container element; mutations are relayed."""

    def __init__(self, bridge: WidgetBridge, classes: tuple[str, ...] = ()) -> None:
        self._bridge = bridge
        self.classes: set[str] = set(classes)
        self.styles: dict[str, str] = {}

    def add_class(self, name: str) -> None:
        self.classes.add(name)
        self._bridge.send({"type": "CONTAINER_UPDATE", "add_class": name})

    def remove_class(self, name: str) -> None:
        self.classes.discard(name)
        self._bridge.send({"type": "CONTAINER_UPDATE", "remove_class": name})

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def set_style(self, prop: str, value: str) -> None:
        self.styles[prop] = value
        self._bridge.send({"type": "CONTAINER_UPDATE", "style": {prop: value}})


# ------------------------------------------------------------------
# Bridge
# ------------------------------------------------------------------

class WidgetBridge:
    """One bridge per controller. At most one shim attached at a time."""

    def __init__(self, *, controller_id: str = "") -> None:
        self._controller_id = controller_id
        self._outbound: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._handlers: dict[str, list[CallHandler]] = {name: [] for name in CALL_EVENTS}

        self._attached = False
        self._settings: SdkSettings | None = None
        self._pending_init: asyncio.Future[bool] | None = None
        self._workspace_created = False
        self._logged_in = False

        self._container: BridgedContainer | None = None

        self._user_agent = ""
        self._is_brave = False
        self._cookie_probe: bool | None = None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> None:
        # commands queued for a previous shim never reach the new one
        stale = self.drain_outbound()
        self._attached = True
        self._log("widget_attached", {"dropped_stale": len(stale)})

    def detach(self) -> None:
        self._attached = False
        self._container = None
        self._workspace_created = False
        self._logged_in = False
        if self._pending_init is not None and not self._pending_init.done():
            self._pending_init.set_exception(SdkNotReadyError("widget disconnected"))
        self._log("widget_detached")

    def send(self, msg: dict[str, Any]) -> None:
        if not self._attached:
            self._log("widget_send_dropped", {"msg_type": msg.get("type")})
            return
        self._outbound.put_nowait({**msg, "ts_ms": now_ms()})

    async def next_outbound(self) -> dict[str, Any]:
        return await self._outbound.get()

    def drain_outbound(self) -> tuple[dict[str, Any], ...]:
        out: list[dict[str, Any]] = []
        while not self._outbound.empty():
            out.append(self._outbound.get_nowait())
        return tuple(out)

    async def on_json_message(self, payload: str) -> str | None:
        """
        Apply one inbound shim message.

        Returns the message type, or None if the message was rejected.
        """
        # pylint: disable=too-many-branches
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            self._log("JSON_DECODE_ERROR", {"error": str(e), "payload_preview": payload[:100]})
            return None
        if not isinstance(data, dict):
            self._log("UNKNOWN_MESSAGE_TYPE", {"payload_preview": payload[:100]})
            return None

        msg_type = data.get("type")

        if msg_type == "HELLO":
            self._user_agent = str(data.get("user_agent") or "")
            self._is_brave = bool(data.get("is_brave"))
            probe = data.get("cookie_probe")
            self._cookie_probe = None if probe is None else bool(probe)
            self._logged_in = bool(data.get("logged_in"))
            if data.get("container_mounted"):
                self._mount(data.get("classes") or (WORKSPACE_HIDDEN_CLASS,))

        elif msg_type == "SDK_INITIALIZED":
            self._workspace_created = bool(data.get("workspace_created", True))
            self._resolve_init(True)

        elif msg_type == "SDK_ERROR":
            self._workspace_created = False
            message = str(data.get("message") or "unknown widget error")
            if self._pending_init is not None and not self._pending_init.done():
                self._pending_init.set_exception(SdkInitializationError(message))
            else:
                self._log("widget_error", {"message": message})

        elif msg_type == "LOGIN":
            self._logged_in = True
            if self._settings is not None and self._settings.on_login is not None:
                self._settings.on_login()

        elif msg_type == "LOGOUT":
            self._logged_in = False
            if self._settings is not None and self._settings.on_logout is not None:
                self._settings.on_logout()

        elif msg_type == "CALL_EVENT":
            name = str(data.get("name") or "")
            for handler in list(self._handlers.get(name, ())):
                handler(dict(data.get("call") or {}))

        elif msg_type == "CONTAINER_MOUNTED":
            self._mount(data.get("classes") or (WORKSPACE_HIDDEN_CLASS,))

        elif msg_type == "CONTAINER_UNMOUNTED":
            self._container = None

        else:
            self._log("UNKNOWN_MESSAGE_TYPE", {"msg_type": msg_type})
            return None

        return msg_type

    def _mount(self, classes: Any) -> None:
        self._container = BridgedContainer(self, tuple(str(c) for c in classes))

    def _resolve_init(self, value: bool) -> None:
        if self._pending_init is not None and not self._pending_init.done():
            self._pending_init.set_result(value)

    # ------------------------------------------------------------------
    # Container + environment
    # ------------------------------------------------------------------

    def find_container(self) -> BridgedContainer | None:
        """Lookup of #aircall-workspace-container; None until mounted."""
        return self._container

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @property
    def is_brave(self) -> bool:
        return self._is_brave

    async def cookie_probe(self) -> bool:
        if self._cookie_probe is None:
            raise SdkNotReadyError("cookie probe not reported by widget")
        return self._cookie_probe

    # ------------------------------------------------------------------
    # TelephonySdkProtocol
    # ------------------------------------------------------------------

    async def initialize(
        self,
        settings: SdkSettings,
        abort: asyncio.Event | None = None,
    ) -> None:
        if not self._attached:
            raise SdkNotReadyError("widget not connected")
        if abort is not None and abort.is_set():
            raise SdkInitializationError("initialization aborted")

        self._settings = settings
        self._workspace_created = False
        self._pending_init = asyncio.get_running_loop().create_future()

        self.send({
            "type": "SDK_INITIALIZE",
            "api_id": settings.api_id,
            "domain_name": settings.domain_name,
            "container_id": WORKSPACE_CONTAINER_ID,
        })

        try:
            await self._pending_init
        except asyncio.CancelledError:
            self.send({"type": "SDK_ABORT"})
            raise
        finally:
            self._pending_init = None

    def is_workspace_created(self) -> bool:
        return self._workspace_created

    def is_ready(self) -> bool:
        return self._attached and self._workspace_created

    async def get_login_status(self) -> bool:
        if not self.is_ready():
            return False
        return self._logged_in

    def set_login_status(self, logged_in: bool) -> None:
        self._logged_in = logged_in
        self.send({"type": "SET_LOGIN_STATUS", "logged_in": logged_in})

    def clear_login_status(self) -> None:
        self.set_login_status(False)

    async def show_workspace(self) -> None:
        self._require_ready()
        self.send({"type": "WORKSPACE_SHOW"})

    async def hide_workspace(self) -> None:
        self._require_ready()
        self.send({"type": "WORKSPACE_HIDE"})

    async def disconnect(self) -> None:
        self.send({"type": "SDK_DISCONNECT"})
        self._workspace_created = False
        self._logged_in = False

    def on(self, event_name: str, handler: CallHandler) -> Unsubscribe:
        handlers = self._handlers.setdefault(event_name, [])
        handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    async def answer_call(self) -> None:
        self._require_ready()
        self.send({"type": "CALL_ANSWER"})

    async def reject_call(self) -> None:
        self._require_ready()
        self.send({"type": "CALL_REJECT"})

    async def hang_up(self) -> None:
        self._require_ready()
        self.send({"type": "CALL_HANGUP"})

    async def dial_number(self, phone_number: str) -> None:
        self._require_ready()
        self.send({"type": "CALL_DIAL", "phone_number": phone_number})

    def _require_ready(self) -> None:
        if not self.is_ready():
            raise SdkNotReadyError("widget not ready")

    def _log(self, event_type: str, details: dict[str, Any] | None = None) -> None:
        log_event({
            "event_type": event_type,
            "controller_id": self._controller_id,
            "details": details or {},
        })
