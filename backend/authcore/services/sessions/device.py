"""Best-effort device classification from a User-Agent header.

The result only labels sessions for display; it never gates authorization.
"""

from __future__ import annotations

import re

_MOBILE = re.compile(r"mobile", re.I)
_TABLET = re.compile(r"tablet|ipad", re.I)
_IPHONE = re.compile(r"iphone", re.I)
_ANDROID = re.compile(r"android", re.I)

# Order matters: Edge and Chrome agents also mention Safari, Edge mentions Chrome.
_BROWSERS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Edge", re.compile(r"edg(e|a|ios)?/", re.I)),
    ("Firefox", re.compile(r"firefox|fxios", re.I)),
    ("Chrome", re.compile(r"chrome|crios", re.I)),
    ("Safari", re.compile(r"safari", re.I)),
)
_SYSTEMS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("iOS", re.compile(r"iphone|ipad", re.I)),
    ("Android", re.compile(r"android", re.I)),
    ("Windows", re.compile(r"windows", re.I)),
    ("Mac", re.compile(r"mac", re.I)),
    ("Linux", re.compile(r"linux", re.I)),
)


def detect_device_type(user_agent: str | None, hint: str | None = None) -> str:
    """
    Classify a client as ``mobile``, ``tablet`` or ``desktop``.

    The explicit ``hint`` is honoured only when there is no agent string to
    inspect; otherwise the agent wins.

    :param user_agent: Raw ``User-Agent`` header.
    :param hint: Device type declared by the client.
    :returns: One of ``mobile``, ``tablet``, ``desktop``, ``unknown``.
    """
    ua = (user_agent or "").strip()
    if not ua:
        if hint in ("mobile", "tablet", "desktop"):
            return hint
        return "unknown"
    if _MOBILE.search(ua) or _IPHONE.search(ua):
        return "mobile"
    if _TABLET.search(ua):
        return "tablet"
    if _ANDROID.search(ua):
        # Android without "mobile" is a tablet build
        return "tablet"
    return "desktop"


def device_name_from(user_agent: str | None) -> str:
    """Return a ``"<Browser> on <OS>"`` label for the agent."""
    ua = user_agent or ""
    browser = next((name for name, rx in _BROWSERS if rx.search(ua)), "Unknown Browser")
    system = next((name for name, rx in _SYSTEMS if rx.search(ua)), "Unknown OS")
    return f"{browser} on {system}"
