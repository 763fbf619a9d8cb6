"""Notification store: messages, replies and per-recipient read flags."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubhub.db.base import Base
from clubhub.models.enums import NotificationType


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Notification(Base):
    """One authored message.

    Roots have ``reply_to`` unset. Replies always point at the root of their
    thread and are addressed to a single person. Who received a message, and
    whether they read it, lives in :class:`NotificationRecipient`.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_reply_to_created_at", "reply_to", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_username: Mapped[str] = mapped_column(
        ForeignKey("persons.username", ondelete="CASCADE"), index=True, nullable=False
    )
    recipient_username: Mapped[str | None] = mapped_column(
        ForeignKey("persons.username", ondelete="CASCADE"), index=True, nullable=True
    )
    club_name: Mapped[str | None] = mapped_column(
        ForeignKey("clubs.club_name", ondelete="CASCADE"), index=True, nullable=True
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    reply_to: Mapped[int | None] = mapped_column(
        ForeignKey("notifications.id", ondelete="CASCADE"), nullable=True
    )

    recipients: Mapped[list["NotificationRecipient"]] = relationship(
        back_populates="notification",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_root(self) -> bool:
        return self.reply_to is None


class NotificationRecipient(Base):
    """Read flag of one resolved recipient for one notification."""

    __tablename__ = "notification_recipients"
    __table_args__ = (
        UniqueConstraint("notification_id", "username", name="uq_notification_recipients_notification_user"),
        Index("ix_notification_recipients_username_is_read", "username", "is_read"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    notification_id: Mapped[int] = mapped_column(
        ForeignKey("notifications.id", ondelete="CASCADE"), index=True, nullable=False
    )
    username: Mapped[str] = mapped_column(
        ForeignKey("persons.username", ondelete="CASCADE"), nullable=False
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    notification: Mapped[Notification] = relationship(back_populates="recipients")
