"""
Browser detection and compatibility classification.

The widget officially supports Chrome and Chromium-based browsers.
Detection is a pure function of the user agent plus the client's explicit
Brave flag (Brave ships a Chrome user agent).

This module contains NO timers, NO async, NO side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from orchestrator.runtime_context import ClientEnvironmentProtocol


CHROME_DOWNLOAD_URL = "https://www.google.com/chrome/"


class BrowserType(str, Enum):
    CHROME = "chrome"
    BRAVE = "brave"
    EDGE = "edge"
    SAFARI = "safari"
    FIREFOX = "firefox"
    OPERA = "opera"
    IE = "ie"
    UNKNOWN = "unknown"


BROWSER_NAMES: dict[BrowserType, str] = {
    BrowserType.CHROME: "Google Chrome",
    BrowserType.BRAVE: "Brave",
    BrowserType.EDGE: "Microsoft Edge",
    BrowserType.SAFARI: "Safari",
    BrowserType.FIREFOX: "Firefox",
    BrowserType.OPERA: "Opera",
    BrowserType.IE: "Internet Explorer",
    BrowserType.UNKNOWN: "Unknown Browser",
}

_SUPPORTED = frozenset({BrowserType.CHROME, BrowserType.BRAVE, BrowserType.EDGE})
_NEEDS_CONFIGURATION = frozenset({BrowserType.BRAVE, BrowserType.EDGE})

_RECOMMENDATIONS: dict[BrowserType, str] = {
    BrowserType.CHROME: "Fully supported",
    BrowserType.BRAVE: "Disable Brave Shields for this site to use the phone",
    BrowserType.EDGE: "Supported, but Chrome is recommended if you experience issues",
    BrowserType.SAFARI: "Please use Google Chrome for the phone",
    BrowserType.FIREFOX: "Please use Google Chrome for the phone",
    BrowserType.OPERA: "Please use Google Chrome for the phone",
    BrowserType.IE: "Internet Explorer is not supported. Please use Google Chrome",
    BrowserType.UNKNOWN: "For best results, please use Google Chrome",
}


@dataclass(frozen=True)
class BrowserInfo:
    type: BrowserType
    name: str
    is_supported: bool
    requires_configuration: bool
    recommendation: str
    detection_method: str  # "api" | "useragent" | "unknown"


@dataclass(frozen=True)
class BrowserCompatibility:
    """
    Result of check_browser_compatibility().

    is_supported=False is terminal for initialization.
    requires_configuration=True is advisory only.
    """
    is_supported: bool
    requires_configuration: bool
    name: str
    recommendation: str
    browser_type: BrowserType = BrowserType.UNKNOWN


def _classify(user_agent: str, is_brave: bool) -> tuple[BrowserType, str]:
    ua = user_agent or ""

    if is_brave:
        return BrowserType.BRAVE, "api"

    # Edge carries "Chrome" in its user agent too
    if "Chrome" in ua and "Edge" not in ua and "Edg" not in ua:
        return BrowserType.CHROME, "useragent"
    if "Edg" in ua:
        return BrowserType.EDGE, "useragent"
    if "Safari" in ua and "Chrome" not in ua:
        return BrowserType.SAFARI, "useragent"
    if "Firefox" in ua:
        return BrowserType.FIREFOX, "useragent"
    if "OPR" in ua or "Opera" in ua:
        return BrowserType.OPERA, "useragent"
    if "MSIE" in ua or "Trident/" in ua:
        return BrowserType.IE, "useragent"

    return BrowserType.UNKNOWN, "unknown"


def detect_browser(user_agent: str, *, is_brave: bool = False) -> BrowserInfo:
    """Classify the client browser. Brave is only detectable via is_brave."""
    browser_type, method = _classify(user_agent, is_brave)
    return BrowserInfo(
        type=browser_type,
        name=BROWSER_NAMES[browser_type],
        is_supported=browser_type in _SUPPORTED,
        requires_configuration=browser_type in _NEEDS_CONFIGURATION,
        recommendation=_RECOMMENDATIONS[browser_type],
        detection_method=method,
    )


def check_browser_compatibility(env: ClientEnvironmentProtocol) -> BrowserCompatibility:
    info = detect_browser(env.user_agent, is_brave=env.is_brave)
    return BrowserCompatibility(
        is_supported=info.is_supported,
        requires_configuration=info.requires_configuration,
        name=info.name,
        recommendation=info.recommendation,
        browser_type=info.type,
    )


def browser_instructions(browser_type: BrowserType) -> tuple[str, ...]:
    """Remediation steps shown when a browser is unsupported or needs setup."""
    if browser_type is BrowserType.CHROME:
        return (
            "Chrome is fully supported for the phone",
            "If you experience issues, try disabling ad blockers for this site",
        )
    if browser_type is BrowserType.BRAVE:
        return (
            "Click the Brave Lion icon in your address bar",
            'Toggle "Shields" OFF for this site',
            "Reload the page",
            "Alternatively, use Google Chrome",
        )
    if browser_type is BrowserType.EDGE:
        return (
            "Edge is supported, but Chrome is recommended",
            "If you experience issues, try Google Chrome instead",
            "Disable any ad blockers or privacy extensions for this site",
        )
    if browser_type in (BrowserType.SAFARI, BrowserType.FIREFOX):
        return (
            "The phone requires Google Chrome",
            "Please download and install Chrome",
            f"{BROWSER_NAMES[browser_type]} does not support all required features",
        )
    if browser_type is BrowserType.OPERA:
        return (
            "The phone requires Google Chrome",
            "Please download and install Chrome",
        )
    if browser_type is BrowserType.IE:
        return (
            "Internet Explorer is not supported",
            "Please download and install Google Chrome",
        )
    return (
        "Your browser may not be fully supported",
        "For best results, please use Google Chrome",
    )
