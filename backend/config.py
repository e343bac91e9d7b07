"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No controller logic
- No behavioral constants (see spec.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the controller and server wiring.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Phone integration
    # ------------------------------------------------------------------

    phone_enabled: bool
    aircall_api_id: str | None
    aircall_api_token: str | None
    aircall_domain_name: str | None

    # ------------------------------------------------------------------
    # Call reporting
    # ------------------------------------------------------------------

    organization_id: str | None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    # None keeps persisted preferences in memory only
    phone_state_file: str | None

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    @property
    def has_credentials(self) -> bool:
        """True when both API id and token are configured."""
        return bool(self.aircall_api_id) and bool(self.aircall_api_token)

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Missing credentials are not an error here: the controller stays
        idle when they are absent.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            phone_enabled=os.environ.get("PHONE_ENABLED", "1") == "1",
            aircall_api_id=os.environ.get("AIRCALL_API_ID"),
            aircall_api_token=os.environ.get("AIRCALL_API_TOKEN"),
            aircall_domain_name=os.environ.get("AIRCALL_DOMAIN_NAME"),

            organization_id=os.environ.get("ORGANIZATION_ID"),
            phone_state_file=os.environ.get("PHONE_STATE_FILE"),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",
        )
