"""User account model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from authcore.core.extensions import db

from .base import ReprMixin, TimestampMixin, UUIDPKMixin

if TYPE_CHECKING:
    from .session import UserSession

# --- Domain Enums ---
ROLES = ("user", "admin", "moderator", "superadmin")
STATUSES = ("active", "suspended", "pending_verification", "deleted")

UserRole = Enum(*ROLES, name="user_role")
UserStatus = Enum(*STATUSES, name="user_status")


class User(UUIDPKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Authentication identity.

    Fields
    ------
    tenant_id : str
        Owning tenant; accounts created without one get the default tenant.
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    password_hash : str | None
        Adaptive hash. ``None`` for accounts created through an identity
        provider, which can never pass a password check.
    name : str | None
        Display name.
    avatar_url : str | None
        Profile picture, usually supplied by an identity provider.
    role : str
        One of ``user``, ``admin``, ``moderator``, ``superadmin``.
    status : str
        One of ``active``, ``suspended``, ``pending_verification``, ``deleted``.
    email_verified : bool
        Whether the address was confirmed (link or identity provider).
    last_login_at : datetime | None
        Last successful authentication.
    """

    __tablename__ = "users"

    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[str] = mapped_column(UserRole, nullable=False, default="user")
    status: Mapped[str] = mapped_column(UserStatus, nullable=False, default="active")
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    sessions: Mapped[list[UserSession]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_tenant_id", "tenant_id"),
    )

    # -------------------- Status helpers --------------------
    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :param key: Field name (``email``).
        :type key: str
        :param value: Email to normalize.
        :type value: str
        :returns: Normalized email (lowercased/trimmed).
        :rtype: str
        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("name")
    def _normalize_name(self, key: str, value: str | None) -> str | None:
        if value is None:
            return None
        v = value.strip()
        return v or None
