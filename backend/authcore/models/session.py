"""Device session model backing refresh-token redemption."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authcore.core.extensions import db

from .base import ReprMixin, UUIDPKMixin

if TYPE_CHECKING:
    from .user import User

DEVICE_TYPES = ("mobile", "tablet", "desktop", "unknown")

DeviceType = Enum(*DEVICE_TYPES, name="device_type")


class UserSession(UUIDPKMixin, ReprMixin, db.Model):
    """
    One authenticated device of a user.

    ``is_active`` is the sole authority on whether refresh tokens bound to
    this session may still be redeemed. Token columns hold SHA-256 digests,
    never the tokens themselves.
    """

    __tablename__ = "sessions"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str | None] = mapped_column(String(64))
    refresh_token_hash: Mapped[str | None] = mapped_column(String(64))
    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(String(512))
    device_type: Mapped[str] = mapped_column(DeviceType, nullable=False, default="unknown")
    device_name: Mapped[str | None] = mapped_column(String(120))
    remember_me: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_activity_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped[User] = relationship(back_populates="sessions")

    __table_args__ = (
        Index("ix_sessions_user_id_is_active", "user_id", "is_active"),
        Index("ix_sessions_expires_at", "expires_at"),
    )
