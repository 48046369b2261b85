"""Helpers shared by the Redis adapters."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from redis.exceptions import RedisError  # type: ignore[import-untyped]

from authcore.services._shared.errors import StoreUnavailableError


@contextmanager
def guarded(op: str) -> Iterator[None]:
    """Re-raise any Redis failure inside the block as :class:`StoreUnavailableError`."""
    try:
        yield
    except RedisError as exc:
        raise StoreUnavailableError(f"redis {op} failed: {exc}") from exc


def to_str(value: bytes | str | None) -> str | None:
    """Decode a Redis reply regardless of the client's ``decode_responses``."""
    if value is None:
        return None
    if isinstance(value, bytes | bytearray):
        return value.decode()
    return str(value)
