"""Unit tests for User-Agent based device labelling."""

from __future__ import annotations

import pytest

from authcore.services.sessions import detect_device_type, device_name_from

IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
ANDROID_PHONE = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
ANDROID_TABLET = (
    "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IPAD = "Mozilla/5.0 (iPad; CPU OS 12_2 like Mac OS X) AppleWebKit/605.1.15 Safari/605.1.15"
WINDOWS_EDGE = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
)
MAC_CHROME = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
LINUX_FIREFOX = "Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0"


@pytest.mark.parametrize(
    ("ua", "device_type", "name"),
    [
        (IPHONE, "mobile", "Safari on iOS"),
        (ANDROID_PHONE, "mobile", "Chrome on Android"),
        (ANDROID_TABLET, "tablet", "Chrome on Android"),
        (IPAD, "tablet", "Safari on iOS"),
        (WINDOWS_EDGE, "desktop", "Edge on Windows"),
        (MAC_CHROME, "desktop", "Chrome on Mac"),
        (LINUX_FIREFOX, "desktop", "Firefox on Linux"),
    ],
)
def test_known_agents(ua, device_type, name):
    assert detect_device_type(ua) == device_type
    assert device_name_from(ua) == name


def test_agent_wins_over_hint():
    assert detect_device_type(LINUX_FIREFOX, hint="mobile") == "desktop"


@pytest.mark.parametrize(
    ("hint", "expected"),
    [("mobile", "mobile"), ("tablet", "tablet"), ("watch", "unknown"), (None, "unknown")],
)
def test_hint_used_without_agent(hint, expected):
    assert detect_device_type("  ", hint=hint) == expected


def test_unknown_agent_name():
    assert device_name_from(None) == "Unknown Browser on Unknown OS"
