from authcore.services.auth.dto import (
    AuthPolicy,
    AuthResult,
    LoginIn,
    RegisterIn,
    UserPublicOut,
    VerifiedIdentity,
)
from authcore.services.auth.service import AuthService

__all__ = [
    "AuthPolicy",
    "AuthResult",
    "AuthService",
    "LoginIn",
    "RegisterIn",
    "UserPublicOut",
    "VerifiedIdentity",
]
