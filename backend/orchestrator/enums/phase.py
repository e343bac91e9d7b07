"""
Initialization phase enumeration.

Rules:
- This enum defines ONLY the controller phases.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class Phase(str, Enum):
    """
    Discrete phases of the phone integration lifecycle.

    Phases describe initialization and login progress, NOT the live
    connection flag (see ConnectionState.is_connected).
    """

    IDLE = "idle"
    DIAGNOSTICS = "diagnostics"
    CREATING_WORKSPACE = "creating-workspace"
    WORKSPACE_READY = "workspace-ready"
    LOGGING_IN = "logging-in"
    LOGGED_IN = "logged-in"
    NEEDS_LOGIN = "needs-login"
    FAILED = "failed"
