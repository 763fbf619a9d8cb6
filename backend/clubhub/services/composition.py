"""Composition of new notifications and replies."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from clubhub.core.config import settings
from clubhub.core.exceptions import InsufficientPermissionsError, InvalidRequestError, NotFoundError
from clubhub.core.rbac import Viewer, require_viewer
from clubhub.core.sanitize import clean_multiline, clean_optional
from clubhub.db.session import run_read, run_write
from clubhub.models.enums import NotificationType, SendMode
from clubhub.models.notification import Notification, NotificationRecipient
from clubhub.services.policy import SendPlan, authorize_send

logger = logging.getLogger(__name__)


def _clean_message(message: str | None) -> str:
    cleaned = clean_multiline(message)
    if not cleaned:
        raise InvalidRequestError("message_required", field="message")
    if len(cleaned) > settings.MESSAGE_MAX_LENGTH:
        raise InvalidRequestError("message_too_long", field="message")
    return cleaned


def _persist(
    db: Session,
    *,
    sender: str,
    message: str,
    link: str | None,
    notification_type: NotificationType,
    recipients: tuple[str, ...],
    recipient_username: str | None = None,
    club_name: str | None = None,
    reply_to: int | None = None,
) -> Notification:
    record = Notification(
        sender_username=sender,
        recipient_username=recipient_username,
        club_name=club_name,
        type=notification_type,
        message=message,
        link=link,
        reply_to=reply_to,
    )
    record.recipients = [NotificationRecipient(username=name, is_read=False) for name in recipients]
    db.add(record)
    db.flush()
    return record


def _reload(db: Session, record: Notification) -> int:
    db.refresh(record)
    return len(record.recipients)


def send_notification(
    db: Session,
    viewer: Viewer | None,
    *,
    mode: SendMode,
    message: str | None,
    notification_type: NotificationType | None = None,
    link: str | None = None,
    recipient_username: str | None = None,
    club_name: str | None = None,
) -> Notification:
    """Validate, authorize and store a new root notification.

    Recipient resolution and every per-recipient row are written in one
    transaction: a broadcast is either visible to all resolved members or
    to none of them.
    """
    viewer = require_viewer(viewer)
    body = _clean_message(message)
    cleaned_link = clean_optional(link)

    def _write() -> Notification:
        plan: SendPlan = authorize_send(
            db,
            viewer,
            mode,
            club_name=clean_optional(club_name),
            recipient_username=clean_optional(recipient_username),
            notification_type=notification_type,
        )
        return _persist(
            db,
            sender=viewer.username,
            message=body,
            link=cleaned_link,
            notification_type=plan.type,
            recipients=plan.recipients,
            recipient_username=plan.recipient_username,
            club_name=plan.club_name,
        )

    try:
        record = run_write(db, "send_notification", _write)
    except (InsufficientPermissionsError, InvalidRequestError, NotFoundError) as exc:
        logger.warning("Notification rejected for %s (%s): %s", viewer.username, mode.value, exc.message)
        raise
    fanout = run_read(db, "send_notification", lambda: _reload(db, record))
    logger.info(
        "Notification sent: id=%s mode=%s sender=%s recipients=%s",
        record.id,
        mode.value,
        viewer.username,
        fanout,
    )
    return record


def counterparty(root: Notification, username: str) -> str | None:
    if root.sender_username == username:
        return root.recipient_username
    if root.recipient_username == username:
        return root.sender_username
    return None


def reply_to_notification(
    db: Session,
    viewer: Viewer | None,
    reply_to: int,
    message: str | None,
    *,
    link: str | None = None,
) -> Notification:
    """Append a reply to a person-to-person thread.

    Only the two parties of the root may reply. Club broadcasts and reports
    have no single counter-party and cannot be replied to.
    """
    viewer = require_viewer(viewer)
    body = _clean_message(message)
    cleaned_link = clean_optional(link)

    def _write() -> Notification:
        root = db.get(Notification, reply_to)
        if root is None:
            raise NotFoundError("notification_not_found", details={"notification_id": reply_to})
        if not root.is_root:
            raise InsufficientPermissionsError("reply_requires_root", details={"root_id": root.reply_to})
        if root.club_name is not None or root.recipient_username is None:
            raise InsufficientPermissionsError("reply_not_allowed", details={"notification_id": reply_to})
        other = counterparty(root, viewer.username)
        if other is None or other == viewer.username:
            raise InsufficientPermissionsError("reply_not_allowed", details={"notification_id": reply_to})
        return _persist(
            db,
            sender=viewer.username,
            message=body,
            link=cleaned_link,
            notification_type=NotificationType.email,
            recipients=(other,),
            recipient_username=other,
            reply_to=root.id,
        )

    try:
        record = run_write(db, "reply_to_notification", _write)
    except (InsufficientPermissionsError, NotFoundError) as exc:
        logger.warning("Reply rejected for %s on %s: %s", viewer.username, reply_to, exc.message)
        raise
    run_read(db, "reply_to_notification", lambda: _reload(db, record))
    logger.info("Reply sent: id=%s root=%s sender=%s", record.id, reply_to, viewer.username)
    return record
