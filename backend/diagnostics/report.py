"""
Combined environment diagnostics.

Runs the cookie probe and browser classification once and folds them into
the issue tags and remediation text carried by DiagnosticsCompleted.
"""

from __future__ import annotations

from dataclasses import dataclass

from diagnostics.browser import (
    BrowserCompatibility,
    browser_instructions,
    check_browser_compatibility,
)
from diagnostics.cookies import (
    CookieCheckResult,
    check_third_party_cookies,
    cookie_enable_instructions,
)
from orchestrator.runtime_context import ClientEnvironmentProtocol


ISSUE_COOKIES_BLOCKED = "third_party_cookies_blocked"
ISSUE_BROWSER_UNSUPPORTED = "browser_unsupported"
ISSUE_BROWSER_NEEDS_CONFIGURATION = "browser_requires_configuration"


@dataclass(frozen=True)
class DiagnosticsReport:
    cookies: CookieCheckResult
    browser: BrowserCompatibility
    issues: tuple[str, ...]
    remediation: tuple[str, ...]

    @property
    def passed(self) -> bool:
        return self.cookies.supported and self.browser.is_supported


async def run_diagnostics(env: ClientEnvironmentProtocol) -> DiagnosticsReport:
    cookies = await check_third_party_cookies(env)
    browser = check_browser_compatibility(env)

    issues: list[str] = []
    remediation: tuple[str, ...] = ()

    if not cookies.supported:
        issues.append(ISSUE_COOKIES_BLOCKED)
        remediation = cookie_enable_instructions(cookies.browser_type)
    if not browser.is_supported:
        issues.append(ISSUE_BROWSER_UNSUPPORTED)
        # browser advice replaces cookie advice
        remediation = browser_instructions(browser.browser_type)
    elif browser.requires_configuration:
        issues.append(ISSUE_BROWSER_NEEDS_CONFIGURATION)
        if not remediation:
            remediation = browser_instructions(browser.browser_type)

    return DiagnosticsReport(
        cookies=cookies,
        browser=browser,
        issues=tuple(issues),
        remediation=remediation,
    )
