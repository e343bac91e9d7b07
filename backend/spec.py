"""
SPEC-AS-CONSTANTS
-----------------
Single source of truth for all behavioral invariants in the phone
integration controller.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Initialization
# =============================================================================

# Browser shim must answer SDK_INITIALIZE within this window
SDK_INITIALIZE_TIMEOUT_MS: Final[int] = 10_000

# =============================================================================
# Login detection
# =============================================================================

LOGIN_GRACE_PERIOD_MS: Final[int] = 30_000

LOGIN_POLL_INTERVAL_MS: Final[int] = 3_000
LOGIN_POLL_MAX_ATTEMPTS: Final[int] = 40  # 120 seconds total

LOGIN_TIMEOUT_WARNING_MS: Final[int] = 30_000

MANUAL_LOGIN_RECHECK_DELAY_MS: Final[int] = 2_000

# A cached login younger than this is restored without forcing a fresh login
RECENT_CONNECTION_WINDOW_MS: Final[int] = 24 * 60 * 60 * 1000

# =============================================================================
# Reconnection policy
# =============================================================================

MAX_RECONNECT_ATTEMPTS: Final[int] = 5
BASE_RECONNECT_DELAY_MS: Final[int] = 1_000

# Attempts by any subsystem inside this window suppress a new one
RECONNECT_DEBOUNCE_MS: Final[int] = 5_000

# =============================================================================
# Workspace visibility
# =============================================================================

WORKSPACE_CONTAINER_ID: Final[str] = "aircall-workspace-container"
WORKSPACE_HIDDEN_CLASS: Final[str] = "aircall-hidden"
WORKSPACE_VISIBLE_CLASS: Final[str] = "aircall-visible"

# Retries after the first lookup, not total lookups
WORKSPACE_DOM_RETRY_ATTEMPTS: Final[int] = 3
WORKSPACE_DOM_RETRY_INTERVAL_MS: Final[int] = 100

# =============================================================================
# Calls
# =============================================================================

# currentCall stays visible this long after call_ended
CALL_CLEAR_DELAY_MS: Final[int] = 5_000

CALL_EVENT_DEDUP_WINDOW_MS: Final[int] = 5_000
CALL_EVENT_CACHE_MAX: Final[int] = 100

CALL_EVENTS: Final[Tuple[str, ...]] = (
    "incoming_call",
    "outgoing_call",
    "call_ended",
)

# =============================================================================
# Error classification
# =============================================================================

# Matched case-insensitively against initialization error messages
BLOCKING_ERROR_PATTERNS: Final[Tuple[str, ...]] = (
    "err_blocked_by_client",
    "timeout",
    "net::",
)

AUTH_ERROR_PATTERNS: Final[Tuple[str, ...]] = (
    "401",
    "unauthorized",
    "authentication",
)

# =============================================================================
# Persisted keys
# =============================================================================

KEY_WORKSPACE_VISIBLE: Final[str] = "aircall_workspace_visible"
KEY_CONNECTION_TIMESTAMP: Final[str] = "aircall_connection_timestamp"
KEY_CONNECTION_ATTEMPTS: Final[str] = "aircall_connection_attempts"
KEY_OPTED_OUT: Final[str] = "aircall_opted_out"
KEY_LAST_RECONNECT_ATTEMPT: Final[str] = "last_reconnect_attempt"

