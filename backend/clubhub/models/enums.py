"""Shared enum values used by the database models and schemas."""

from __future__ import annotations

import enum


class ClubRole(str, enum.Enum):
    leader = "CL"
    vice_president = "VP"
    member = "CM"
    # Applied for membership, not yet accepted.
    student = "STU"


OFFICER_ROLES = frozenset({ClubRole.leader, ClubRole.vice_president})


class NotificationType(str, enum.Enum):
    email = "email"
    event = "event"
    membership = "membership"
    report = "report"


class SendMode(str, enum.Enum):
    individual = "individual"
    club_broadcast = "club-broadcast"
    report = "report"


class Mailbox(str, enum.Enum):
    inbox = "inbox"
    sent = "sent"
    club = "club"
    report = "report"
    conversation = "conversation"
    all = "all"


class MailboxGroupBy(str, enum.Enum):
    created = "created"
    type = "type"
    read = "read"


class SortOrder(str, enum.Enum):
    asc = "asc"
    desc = "desc"
