"""
Route registration for the phone integration API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire the widget bridge to the WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import Body, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from adapters.sdk.widget_bridge import WidgetBridge
from calls.webhook import InvalidWebhookError, ingest_webhook
from observability.logger import log_event
from session.controller import CallIntegrationController


class ShowWorkspaceRequest(BaseModel):
    for_login: bool = False


class DialRequest(BaseModel):
    phone_number: str


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    # pylint: disable=too-many-locals

    def _controller() -> CallIntegrationController:
        return app.state.controller

    def _state_response(**extra: Any) -> dict[str, Any]:
        controller = _controller()
        return {
            **extra,
            "state": controller.snapshot(),
            "notifications": list(controller.drain_notifications()),
        }

    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Controller state + user actions
    # ------------------------------------------------------------------

    @app.get("/phone/state")
    async def phone_state() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        return _state_response()

    @app.post("/phone/workspace/show")
    async def workspace_show( # pyright: ignore[reportUnusedFunction]
        body: ShowWorkspaceRequest | None = None,
    ) -> dict[str, Any]:
        ok = await _controller().show_workspace(for_login=bool(body and body.for_login))
        return _state_response(ok=ok)

    @app.post("/phone/workspace/hide")
    async def workspace_hide() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        ok = await _controller().hide_workspace()
        return _state_response(ok=ok)

    @app.post("/phone/login/confirm")
    async def login_confirm() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        await _controller().confirm_login()
        return _state_response()

    @app.post("/phone/retry")
    async def retry() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        await _controller().force_retry()
        return _state_response()

    @app.post("/phone/opt-out")
    async def opt_out() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        await _controller().opt_out()
        return _state_response()

    # ------------------------------------------------------------------
    # Call controls
    # ------------------------------------------------------------------

    @app.post("/phone/calls/dial")
    async def call_dial(body: DialRequest) -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        if not body.phone_number.strip():
            raise HTTPException(status_code=422, detail="phone_number is required")
        ok = await _controller().dial_number(body.phone_number.strip())
        return _state_response(ok=ok)

    @app.post("/phone/calls/{action}")
    async def call_action(action: str) -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        controller = _controller()
        if action == "answer":
            ok = await controller.answer_call()
        elif action == "reject":
            ok = await controller.reject_call()
        elif action == "hangup":
            ok = await controller.hang_up()
        else:
            raise HTTPException(status_code=404, detail=f"unknown call action: {action}")
        return _state_response(ok=ok)

    # ------------------------------------------------------------------
    # Provider webhook
    # ------------------------------------------------------------------

    @app.post("/webhooks/calls")
    async def calls_webhook( # pyright: ignore[reportUnusedFunction]
        payload: dict[str, Any] = Body(...),
    ) -> dict[str, Any]:
        controller = _controller()
        try:
            result = ingest_webhook(
                payload,
                store=controller.call_store,
                bridge=app.state.call_event_bridge,
                organization_id=app.state.config.organization_id,
            )
        except InvalidWebhookError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        return {
            "outcome": result.outcome,
            "external_id": result.external_id,
            "status": result.status.value if result.status else None,
        }

    # ------------------------------------------------------------------
    # Widget shim channel
    # ------------------------------------------------------------------

    @app.websocket("/ws/widget")
    async def widget_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        controller = _controller()
        bridge = controller.bridge
        await ws.accept()

        if bridge is None:
            await ws.close(code=1011)
            return

        bridge.attach()
        sender = asyncio.create_task(_pump_outbound(ws, bridge))

        try:
            while True:
                text = await ws.receive_text()
                msg_type = await bridge.on_json_message(text)
                if msg_type == "HELLO":
                    # initialization needs this loop to keep receiving
                    controller.request_start()

        except WebSocketDisconnect:
            pass

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "level": "ERROR",
                "controller_id": controller.controller_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

        finally:
            await controller.detach_widget()
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)


async def _pump_outbound(ws: WebSocket, bridge: WidgetBridge) -> None:
    while True:
        msg = await bridge.next_outbound()
        await ws.send_text(json.dumps(msg))
