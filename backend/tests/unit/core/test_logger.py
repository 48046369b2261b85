"""Unit tests for the JSON log formatter."""

from __future__ import annotations

import json
import logging
import sys

from authcore.core.logger import JSONFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="authcore.test", level=logging.WARNING, pathname=__file__, lineno=1,
        msg="token.%s", args=("reuse_detected",), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_format_promotes_whitelisted_extras():
    line = JSONFormatter().format(
        _record(user_id="u1", session_id="s1", kind="refresh_token_reuse_detected",
                count=3, password="hunter2")
    )

    payload = json.loads(line)
    assert payload["message"] == "token.reuse_detected"
    assert payload["level"] == "WARNING"
    assert payload["name"] == "authcore.test"
    assert payload["user_id"] == "u1"
    assert payload["session_id"] == "s1"
    assert payload["count"] == 3
    assert "password" not in payload


def test_format_includes_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record()
        record.exc_info = sys.exc_info()

    payload = json.loads(JSONFormatter().format(record))

    assert "ValueError: boom" in payload["exc_info"]
