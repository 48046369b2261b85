"""
authcore.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) that define the contracts
for token management and authentication infrastructure.

These ports decouple the service layer from concrete implementations of
token signing, the shared fast store, password hashing and event delivery.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider`: JWT signing and decoding per token kind.
- :mod:`denylist_store`:
    Defines :class:`~.TokenDenylistStore`: short-lived access token blacklist.
- :mod:`token_family_store`:
    Defines :class:`~.TokenFamilyStore` and :class:`~.RotationResult`:
    refresh family pointers with atomic rotation.
- :mod:`token_version_store`:
    Defines :class:`~.TokenVersionStore`: per-user global invalidation counter.
- :mod:`rate_limiter`, :mod:`user_cache`, :mod:`one_time_token_store`:
    Throttling counters, credential cache and single-use tokens.
- :mod:`event_publisher`, :mod:`password_hasher`:
    Outbound events and the adaptive hash primitive.

Design Notes
------------
Concrete adapters (Redis, PyJWT, werkzeug) implement these interfaces under
``authcore.infra``.
"""

from __future__ import annotations

from .denylist_store import TokenDenylistStore
from .event_publisher import EventPublisher, NullEventPublisher
from .one_time_token_store import OneTimeTokenStore
from .password_hasher import PasswordHasher
from .rate_limiter import RateLimiter
from .token_family_store import RotationResult, TokenFamilyStore
from .token_provider import ACCESS, REFRESH, TokenProvider
from .token_version_store import TokenVersionStore
from .user_cache import UserCache

__all__ = [
    "ACCESS",
    "REFRESH",
    "EventPublisher",
    "NullEventPublisher",
    "OneTimeTokenStore",
    "PasswordHasher",
    "RateLimiter",
    "RotationResult",
    "TokenDenylistStore",
    "TokenFamilyStore",
    "TokenProvider",
    "TokenVersionStore",
    "UserCache",
]
