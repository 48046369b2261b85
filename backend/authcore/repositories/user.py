"""User repository for account persistence."""

from __future__ import annotations

from datetime import datetime

from authcore.models.user import STATUSES, User
from authcore.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER handles tokens or sessions, only DB-level account state.
    """

    model = User

    # ---------------------------- Whitelists ----------------------------

    def _filterable_fields(self):
        """Whitelist fields safe for equality filters."""
        return {
            "email": User.email,
            "tenant_id": User.tenant_id,
            "status": User.status,
        }

    def _updatable_fields(self):
        """Publicly allowed updatable fields (not including the password hash)."""
        return {"name", "avatar_url", "status", "email_verified", "email_verified_at"}

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        return self.find_one(email=email.lower().strip())

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a user with the provided email exists."""
        return self.exists(email=email.lower().strip())

    # ---------------------------- State changes ----------------------------

    def set_password_hash(self, user: User, password_hash: str | None) -> None:
        """Replace the stored hash; hashing itself happens outside persistence."""
        user.password_hash = password_hash
        self.flush()

    def set_status(self, user: User, status: str) -> None:
        """Move the account to ``status``.

        :raises ValueError: If ``status`` is not a known account status.
        """
        if status not in STATUSES:
            raise ValueError(f"Unknown user status: {status!r}")
        user.status = status
        self.flush()

    def mark_email_verified(self, user: User, *, at: datetime) -> None:
        """Flag the address as confirmed and activate a pending account."""
        user.email_verified = True
        user.email_verified_at = at
        if user.status == "pending_verification":
            user.status = "active"
        self.flush()

    def mark_login(self, user: User, *, at: datetime) -> None:
        user.last_login_at = at
        self.flush()
