"""
Runtime execution context.

Provides Runtime with live access to the controller-owned imperative
resources needed for command execution (SDK, container, stores, client
environment facts).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable


# ---------------------------------------------------------------------
# SDK
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class SdkSettings:
    """
    Arguments for TelephonySdkProtocol.initialize().

    on_login / on_logout are the widget's session callbacks. They must only
    dispatch events; they never touch controller state.
    """
    api_id: str
    api_token: str
    domain_name: str = ""
    on_login: Callable[[], None] | None = None
    on_logout: Callable[[], None] | None = None


CallHandler = Callable[[dict[str, Any]], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class TelephonySdkProtocol(Protocol):
    """
    Embedded call-control widget.

    initialize() may raise; the message of the raised exception drives
    error classification.
    """

    async def initialize(
        self,
        settings: SdkSettings,
        abort: asyncio.Event | None = None,
    ) -> None: ...

    def is_workspace_created(self) -> bool: ...
    def is_ready(self) -> bool: ...

    async def get_login_status(self) -> bool: ...
    def set_login_status(self, logged_in: bool) -> None: ...
    def clear_login_status(self) -> None: ...

    async def show_workspace(self) -> None: ...
    async def hide_workspace(self) -> None: ...
    async def disconnect(self) -> None: ...

    def on(self, event_name: str, handler: CallHandler) -> Unsubscribe: ...

    async def answer_call(self) -> None: ...
    async def reject_call(self) -> None: ...
    async def hang_up(self) -> None: ...
    async def dial_number(self, phone_number: str) -> None: ...


# ---------------------------------------------------------------------
# Workspace container
# ---------------------------------------------------------------------

@runtime_checkable
class WorkspaceContainerProtocol(Protocol):
    """The element hosting the widget (class list + inline style)."""

    def add_class(self, name: str) -> None: ...
    def remove_class(self, name: str) -> None: ...
    def has_class(self, name: str) -> bool: ...
    def set_style(self, prop: str, value: str) -> None: ...


ContainerLookup = Callable[[], "WorkspaceContainerProtocol | None"]


# ---------------------------------------------------------------------
# Client environment
# ---------------------------------------------------------------------

class ClientEnvironmentProtocol(Protocol):
    """
    Facts reported by the client the widget runs in.

    cookie_probe() performs the third-party storage feature probe and may
    raise; a raised probe counts as unsupported.
    """

    @property
    def user_agent(self) -> str: ...

    @property
    def is_brave(self) -> bool: ...

    async def cookie_probe(self) -> bool: ...


# ---------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------

class KeyValueStore(Protocol):
    """String key/value store. Writes are last-write-wins."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...


class CallRecordStore(Protocol):
    """The `calls` record set used for reporting mirrors."""

    def select(self, **match: Any) -> list[dict[str, Any]]: ...
    def insert(self, record: dict[str, Any]) -> dict[str, Any]: ...
    def update(self, external_id: str, changes: dict[str, Any]) -> dict[str, Any] | None: ...
    def upsert(self, record: dict[str, Any]) -> dict[str, Any]: ...


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    Runtime is allowed to:
    - Call the SDK
    - Read and write the stores
    - Observe client environment facts

    Runtime is NOT allowed to:
    - Mutate controller state directly
    - Perform orchestration decisions
    """

    def __init__(
        self,
        *,
        controller_id: str,
        sdk: TelephonySdkProtocol,
        environment: ClientEnvironmentProtocol,
        local_store: KeyValueStore,
        session_store: KeyValueStore,
        api_id: str = "",
        api_token: str = "",
        domain_name: str = "",
        organization_id: str | None = None,
    ) -> None:
        self.controller_id = controller_id
        self.sdk = sdk
        self.environment = environment
        self.local_store = local_store
        self.session_store = session_store
        self.api_id = api_id
        self.api_token = api_token
        self.domain_name = domain_name
        self.organization_id = organization_id

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_id and self.api_token)
