from authcore.services.tokens.authority import TokenAuthority, hash_token
from authcore.services.tokens.dto import (
    AccessClaims,
    IntrospectionOut,
    RefreshClaims,
    TokenConfig,
    TokenPair,
    TokenSubject,
)

__all__ = [
    "AccessClaims",
    "IntrospectionOut",
    "RefreshClaims",
    "TokenAuthority",
    "TokenConfig",
    "TokenPair",
    "TokenSubject",
    "hash_token",
]
