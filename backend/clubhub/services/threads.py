"""Per-viewer thread resolution.

A thread is a root notification plus the replies pointing at it. Read state
is stored per recipient, so every flag below is derived for one viewer and
never cached across viewers.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from clubhub.models.enums import NotificationType
from clubhub.models.notification import Notification


@dataclass(frozen=True)
class MessageView:
    id: int
    sender_username: str
    recipient_username: str | None
    club_name: str | None
    type: NotificationType
    message: str
    link: str | None
    created_at: dt.datetime
    reply_to: int | None
    is_read: bool
    is_mine: bool


@dataclass(frozen=True)
class ThreadView:
    root: MessageView
    replies: list[MessageView] = field(default_factory=list)
    is_sent: bool = False
    is_person_to_person: bool = False
    is_club_wide: bool = False
    is_report: bool = False
    has_replies: bool = False
    is_conversation: bool = False
    is_unread: bool = False
    has_received_messages: bool = False
    unread_count: int = 0
    last_activity_at: dt.datetime | None = None

    @property
    def id(self) -> int:
        return self.root.id

    @property
    def type(self) -> NotificationType:
        return self.root.type

    @property
    def created_at(self) -> dt.datetime:
        return self.root.created_at

    def messages(self) -> list[MessageView]:
        return [self.root, *self.replies]


def message_order_key(message: Notification) -> tuple:
    return (message.created_at, message.id)


def recipient_flag(message: Notification, username: str):
    for row in message.recipients or []:
        if row.username == username:
            return row
    return None


def is_recipient(message: Notification, username: str) -> bool:
    return recipient_flag(message, username) is not None


def is_unread_for(message: Notification, username: str) -> bool:
    """True when ``username`` received ``message`` and has not read it.

    Authors never hold a flag on their own messages, so this is always
    False for the sender.
    """
    row = recipient_flag(message, username)
    return row is not None and not row.is_read


def _message_view(message: Notification, username: str) -> MessageView:
    row = recipient_flag(message, username)
    return MessageView(
        id=message.id,
        sender_username=message.sender_username,
        recipient_username=message.recipient_username,
        club_name=message.club_name,
        type=NotificationType(message.type),
        message=message.message,
        link=message.link,
        created_at=message.created_at,
        reply_to=message.reply_to,
        is_read=True if row is None else bool(row.is_read),
        is_mine=message.sender_username == username,
    )


def resolve_thread(root: Notification, replies: Iterable[Notification], username: str) -> ThreadView:
    ordered: Sequence[Notification] = sorted(
        (reply for reply in replies if reply.reply_to == root.id),
        key=message_order_key,
    )
    has_replies = bool(ordered)
    is_conversation = has_replies or root.reply_to is not None
    is_report = NotificationType(root.type) == NotificationType.report
    unread_messages = [message for message in (root, *ordered) if is_unread_for(message, username)]
    is_sent = root.sender_username == username

    return ThreadView(
        root=_message_view(root, username),
        replies=[_message_view(reply, username) for reply in ordered],
        is_sent=is_sent,
        is_person_to_person=bool(
            root.recipient_username
            and root.sender_username
            and NotificationType(root.type) == NotificationType.email
        ),
        is_club_wide=bool(not root.recipient_username and root.sender_username and not is_report),
        is_report=is_report,
        has_replies=has_replies,
        is_conversation=is_conversation,
        is_unread=bool(unread_messages),
        has_received_messages=(not is_sent) or any(is_recipient(reply, username) for reply in ordered),
        unread_count=len(unread_messages),
        last_activity_at=(ordered[-1] if ordered else root).created_at,
    )
