"""Person and club rows owned by the club directory, read by the mailbox engine."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubhub.db.base import Base
from clubhub.models.enums import ClubRole


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Person(Base):
    __tablename__ = "persons"

    username: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="person",
        cascade="all, delete-orphan",
        order_by="Membership.club_name",
    )


class Club(Base):
    __tablename__ = "clubs"

    club_name: Mapped[str] = mapped_column(String(128), primary_key=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    member_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Membership(Base):
    __tablename__ = "memberships"
    __table_args__ = (UniqueConstraint("username", "club_name", name="uq_memberships_username_club"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(
        ForeignKey("persons.username", ondelete="CASCADE"), index=True, nullable=False
    )
    club_name: Mapped[str] = mapped_column(
        ForeignKey("clubs.club_name", ondelete="CASCADE"), index=True, nullable=False
    )
    role: Mapped[ClubRole] = mapped_column(
        Enum(ClubRole, name="club_role", values_callable=lambda x: [e.value for e in x]),
        default=ClubRole.student,
        nullable=False,
    )
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    person: Mapped[Person] = relationship(back_populates="memberships")
