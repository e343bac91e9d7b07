"""
Third-party cookie detection.

Layered, best effort, no retries:
1. Known browser policy (Safari, Firefox and Brave block by default)
2. Feature probe reported by the client

A probe that raises counts as unsupported.
"""

from __future__ import annotations

from dataclasses import dataclass

from diagnostics.browser import BROWSER_NAMES, BrowserType, detect_browser
from observability.logger import log_event
from orchestrator.runtime_context import ClientEnvironmentProtocol


_BLOCKED_BY_POLICY = frozenset({BrowserType.SAFARI, BrowserType.FIREFOX, BrowserType.BRAVE})


@dataclass(frozen=True)
class CookieCheckResult:
    supported: bool
    method: str  # "browser_policy" | "feature_test"
    browser_type: BrowserType
    details: str = ""


async def check_third_party_cookies(env: ClientEnvironmentProtocol) -> CookieCheckResult:
    info = detect_browser(env.user_agent, is_brave=env.is_brave)

    if info.type in _BLOCKED_BY_POLICY:
        return CookieCheckResult(
            supported=False,
            method="browser_policy",
            browser_type=info.type,
            details=f"{info.name} blocks third-party cookies by default",
        )

    try:
        supported = bool(await env.cookie_probe())
    except Exception as exc:  # pylint: disable=broad-exception-caught
        log_event({
            "event_type": "COOKIE_PROBE_FAILED",
            "browser_type": info.type.value,
            "error": str(exc),
        })
        supported = False

    return CookieCheckResult(
        supported=supported,
        method="feature_test",
        browser_type=info.type,
        details=(
            "Cookies can be set with SameSite=None"
            if supported
            else "Cannot set cookies with SameSite=None (likely blocked by user or enterprise policy)"
        ),
    )


def cookie_enable_instructions(browser_type: BrowserType) -> tuple[str, ...]:
    if browser_type is BrowserType.CHROME:
        return (
            "Open Chrome Settings",
            "Go to Privacy and Security, then Cookies and other site data",
            'Select "Allow all cookies" or add phone.aircall.io to allowed sites',
            "Restart Chrome and try again",
        )
    if browser_type is BrowserType.EDGE:
        return (
            "Open Edge Settings",
            "Go to Cookies and site permissions, then Manage and delete cookies",
            'Turn off "Block third-party cookies"',
            "Restart Edge and try again",
        )
    if browser_type is BrowserType.FIREFOX:
        return (
            "Open Firefox Settings",
            "Go to Privacy & Security",
            'Set Enhanced Tracking Protection to "Standard"',
            "Restart Firefox and try again",
        )
    if browser_type is BrowserType.BRAVE:
        return (
            "Click the Brave Shields icon in the address bar",
            'Set Shields to "Down" for this site',
            "Or go to Settings, Shields, and allow all cookies",
            "Refresh the page and try again",
        )
    if browser_type is BrowserType.SAFARI:
        return (
            f"{BROWSER_NAMES[browser_type]} blocks third-party cookies by default",
            "This cannot be changed for security reasons",
            "Please use Chrome or Edge for phone functionality",
            "Or continue without phone integration",
        )
    return (
        "Check your browser settings for cookie permissions",
        "Ensure third-party cookies are allowed",
        "Add phone.aircall.io to allowed sites if needed",
        "Restart your browser and try again",
    )
