"""Role → permission snapshot embedded in access tokens."""

from __future__ import annotations

from collections.abc import Mapping

_BASE = (
    "read:profile",
    "write:profile",
    "read:clients",
    "write:clients",
    "read:bookings",
    "write:bookings",
    "read:reports",
    "write:reports",
)

ROLE_PERMISSIONS: Mapping[str, tuple[str, ...]] = {
    "user": _BASE,
    "admin": (*_BASE, "admin:users", "admin:content"),
    "moderator": ("read:profile", "write:profile", "moderate:content", "moderate:users"),
    "superadmin": ("*",),
}


def permissions_for(role: str) -> tuple[str, ...]:
    """Return the permission set of ``role``; unknown roles get the ``user`` set."""
    return ROLE_PERMISSIONS.get(role, ROLE_PERMISSIONS["user"])
