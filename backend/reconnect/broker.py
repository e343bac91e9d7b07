"""
Reconnection broker.

The single entry point every subsystem uses to ask for an SDK
reconnection.

Rules:
- One attempt in flight at a time (mutex); concurrent requests are no-ops
- Requests within the debounce window of the last recorded attempt are
  skipped, whichever subsystem recorded it
- Delay before attempt N is base * 2**N, computed before N is incremented
- The counter resets only on a confirmed login
- Exhaustion is reported exactly once until the next reset

Outcomes are reported as events (Reconnected / ReconnectExhausted) through
the dispatch callable; the broker never touches controller state.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from observability.logger import log_event, now_ms
from orchestrator.events import Event, EventType, ReconnectExhausted, Reconnected
from orchestrator.retry import (
    RetryAttempt,
    get_retry_delay_ms,
    next_attempt,
    reset_attempt,
    should_retry,
)
from orchestrator.runtime_context import KeyValueStore, TelephonySdkProtocol
from session.storage import last_reconnect_attempt, record_reconnect_attempt
from spec import BASE_RECONNECT_DELAY_MS, MAX_RECONNECT_ATTEMPTS, RECONNECT_DEBOUNCE_MS


class ReconnectionBroker:

    def __init__(
        self,
        *,
        sdk: TelephonySdkProtocol,
        reinitialize: Callable[[], Awaitable[None]],
        store: KeyValueStore,
        dispatch: Callable[[Event], Awaitable[None]],
        controller_id: str = "",
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        base_delay_ms: int = BASE_RECONNECT_DELAY_MS,
        debounce_ms: int = RECONNECT_DEBOUNCE_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._sdk = sdk
        self._reinitialize = reinitialize
        self._store = store
        self._dispatch = dispatch
        self._controller_id = controller_id
        self._max_attempts = max_attempts
        self._base_delay_ms = base_delay_ms
        self._debounce_ms = debounce_ms
        self._sleep = sleep
        self._clock = clock

        self._attempt = reset_attempt()
        self._in_progress = False
        self._exhausted_reported = False

    @property
    def attempts(self) -> int:
        return self._attempt.attempt

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def reset(self) -> None:
        """Called after a confirmed login."""
        self._attempt = reset_attempt()
        self._exhausted_reported = False

    async def request_reconnect(self, source: str = "controller") -> bool:
        """
        Ask for a reconnection.

        Returns True if the SDK was reconnected by this request, False if
        the request was skipped or every attempt failed.
        """
        if self._in_progress:
            self._log("reconnect_skipped", source, {"reason": "in_progress"})
            return False

        last = last_reconnect_attempt(self._store)
        now = self._clock()
        if last is not None and now - last < self._debounce_ms:
            self._log("reconnect_skipped", source, {
                "reason": "debounced",
                "since_last_ms": now - last,
            })
            return False

        return await self._run(source)

    async def _run(self, source: str) -> bool:
        # Internal retries bypass the debounce
        while True:
            if not should_retry(self._attempt, max_attempts=self._max_attempts):
                await self._report_exhausted(source)
                return False

            self._in_progress = True
            try:
                delay_ms = get_retry_delay_ms(self._attempt, base_delay_ms=self._base_delay_ms)
                self._attempt = next_attempt(self._attempt)
                record_reconnect_attempt(self._store, now_ms=self._clock())

                self._log("reconnect_scheduled", source, {
                    "attempt": self._attempt.attempt,
                    "delay_ms": delay_ms,
                })
                await self._sleep(delay_ms / 1000.0)
                ok = await self._attempt_once(source)
            finally:
                self._in_progress = False

            if ok:
                attempts = self._attempt.attempt
                self.reset()
                self._log("reconnect_succeeded", source, {"attempts": attempts})
                await self._dispatch(
                    Reconnected(
                        event_type=EventType.RECONNECTED,
                        ts_ms=self._clock(),
                        attempts=attempts,
                    )
                )
                return True

    async def _attempt_once(self, source: str) -> bool:
        try:
            await self._reinitialize()
            logged_in = await self._sdk.get_login_status()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._log("reconnect_attempt_failed", source, {
                "attempt": self._attempt.attempt,
                "error": str(exc),
            })
            return False

        if not logged_in:
            self._log("reconnect_attempt_failed", source, {
                "attempt": self._attempt.attempt,
                "error": "not_logged_in",
            })
        return bool(logged_in)

    async def _report_exhausted(self, source: str) -> None:
        if self._exhausted_reported:
            self._log("reconnect_skipped", source, {"reason": "exhausted"})
            return

        self._exhausted_reported = True
        self._log("reconnect_exhausted", source, {"attempts": self._attempt.attempt})
        await self._dispatch(
            ReconnectExhausted(
                event_type=EventType.RECONNECT_EXHAUSTED,
                ts_ms=self._clock(),
                attempts=self._attempt.attempt,
            )
        )

    def _log(self, event_type: str, source: str, details: dict[str, Any]) -> None:
        log_event({
            "event_type": event_type,
            "controller_id": self._controller_id,
            "source": source,
            "details": details,
        })
