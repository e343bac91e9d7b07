"""
Workspace visibility manager.

Idempotent show/hide of the widget container.

Guarantees:
- At most one show and one hide in flight; re-entrant calls are dropped
- Show and hide never interleave (one shared lock)
- Showing a visible workspace / hiding a hidden one touches neither the
  SDK nor the container
- Container lookup is retried a bounded number of times, then gives up
  with a logged failure (never raises)
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from observability.logger import log_event
from orchestrator.runtime_context import (
    ContainerLookup,
    KeyValueStore,
    TelephonySdkProtocol,
    WorkspaceContainerProtocol,
)
from session.storage import set_workspace_visible, workspace_visible_preference
from spec import (
    WORKSPACE_DOM_RETRY_ATTEMPTS,
    WORKSPACE_DOM_RETRY_INTERVAL_MS,
    WORKSPACE_HIDDEN_CLASS,
    WORKSPACE_VISIBLE_CLASS,
)


class WorkspaceVisibilityManager:
    """Owns every mutation of the workspace container."""

    def __init__(
        self,
        *,
        sdk: TelephonySdkProtocol,
        find_container: ContainerLookup,
        store: KeyValueStore,
        is_workspace_ready: Callable[[], bool],
        controller_id: str = "",
        retry_attempts: int = WORKSPACE_DOM_RETRY_ATTEMPTS,
        retry_interval_ms: int = WORKSPACE_DOM_RETRY_INTERVAL_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._sdk = sdk
        self._find_container = find_container
        self._store = store
        self._is_workspace_ready = is_workspace_ready
        self._controller_id = controller_id
        self._retry_attempts = retry_attempts
        self._retry_interval_ms = retry_interval_ms
        self._sleep = sleep

        self._lock = asyncio.Lock()
        self._showing = False
        self._hiding = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_visible(self) -> bool:
        """Live container state, falling back to the persisted preference."""
        container = self._find_container()
        if container is None:
            return bool(workspace_visible_preference(self._store))
        return _is_shown(container)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def show(self, *, for_login: bool = False) -> bool:
        """
        Reveal the workspace.

        for_login bypasses the readiness check (the login UI lives inside
        the widget). Returns True when the workspace is visible afterwards.
        """
        if self._showing:
            self._log("workspace_show_dropped", {"reason": "show_in_flight"})
            return False

        self._showing = True
        try:
            async with self._lock:
                return await self._show(for_login)
        finally:
            self._showing = False

    async def hide(self) -> bool:
        """Hide the workspace. Returns True when it is hidden afterwards."""
        if self._hiding:
            self._log("workspace_hide_dropped", {"reason": "hide_in_flight"})
            return False

        self._hiding = True
        try:
            async with self._lock:
                return await self._hide()
        finally:
            self._hiding = False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _show(self, for_login: bool) -> bool:
        if not for_login and not self._is_workspace_ready():
            self._log("workspace_show_not_ready", {"proceeding": True})

        container = await self._lookup_with_retry()
        if container is None:
            self._log("workspace_show_failed", {
                "reason": "container_not_found",
                "retries": self._retry_attempts,
            })
            return False

        if _is_shown(container):
            self._log("workspace_show_noop", {"for_login": for_login})
            return True

        container.remove_class(WORKSPACE_HIDDEN_CLASS)
        container.add_class(WORKSPACE_VISIBLE_CLASS)
        container.set_style("pointer-events", "auto")
        set_workspace_visible(self._store, True)

        if self._sdk.is_workspace_created():
            try:
                await self._sdk.show_workspace()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self._log("workspace_sdk_show_failed", {"error": str(exc)})

        self._log("workspace_shown", {"for_login": for_login})
        return True

    async def _hide(self) -> bool:
        container = self._find_container()
        if container is None:
            set_workspace_visible(self._store, False)
            self._log("workspace_hide_noop", {"reason": "container_not_found"})
            return True

        if container.has_class(WORKSPACE_HIDDEN_CLASS):
            self._log("workspace_hide_noop", {"reason": "already_hidden"})
            return True

        if self._sdk.is_workspace_created():
            try:
                await self._sdk.hide_workspace()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self._log("workspace_sdk_hide_failed", {"error": str(exc)})

        container.remove_class(WORKSPACE_VISIBLE_CLASS)
        container.add_class(WORKSPACE_HIDDEN_CLASS)
        set_workspace_visible(self._store, False)

        self._log("workspace_hidden")
        return True

    async def _lookup_with_retry(self) -> WorkspaceContainerProtocol | None:
        container = self._find_container()
        retries = 0
        while container is None and retries < self._retry_attempts:
            retries += 1
            await self._sleep(self._retry_interval_ms / 1000.0)
            container = self._find_container()
        return container

    def _log(self, event_type: str, details: dict[str, Any] | None = None) -> None:
        log_event({
            "event_type": event_type,
            "controller_id": self._controller_id,
            "details": details or {},
        })


def _is_shown(container: WorkspaceContainerProtocol) -> bool:
    return (
        container.has_class(WORKSPACE_VISIBLE_CLASS)
        and not container.has_class(WORKSPACE_HIDDEN_CLASS)
    )
