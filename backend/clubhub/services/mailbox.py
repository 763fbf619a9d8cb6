"""Mailbox queries and read-state updates over the notification store."""

from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import dataclass, field

from sqlalchemy import ColumnElement, and_, false, func, or_, select, update
from sqlalchemy.orm import Session, aliased

from clubhub.core.config import settings
from clubhub.core.exceptions import InsufficientPermissionsError, InvalidRequestError, NotFoundError
from clubhub.core.rbac import (
    Viewer,
    can_view_mailbox,
    is_club_officer,
    is_super_admin,
    officer_clubs,
    require_viewer,
    visible_mailboxes,
)
from clubhub.core.sanitize import clean_single_line
from clubhub.db.session import run_read, run_write
from clubhub.models.enums import Mailbox, MailboxGroupBy, NotificationType, SortOrder
from clubhub.models.notification import Notification, NotificationRecipient
from clubhub.services.threads import ThreadView, is_recipient, resolve_thread

logger = logging.getLogger(__name__)

Reply = aliased(Notification, name="reply")


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class MailboxFilters:
    mailbox: Mailbox = Mailbox.all
    search: str = ""
    group_by: MailboxGroupBy = MailboxGroupBy.created
    order: SortOrder = SortOrder.desc
    page: int = 1
    limit: int = field(default_factory=lambda: settings.MAILBOX_DEFAULT_LIMIT)
    unread: bool | None = None


@dataclass(frozen=True)
class MailboxPage:
    items: list[ThreadView]
    page: int
    pages: int
    total: int


def build_filters(
    *,
    mailbox: str | Mailbox = Mailbox.all,
    search: str | None = None,
    group_by: str | MailboxGroupBy = MailboxGroupBy.created,
    order: str | SortOrder = SortOrder.desc,
    page: int = 1,
    limit: int | None = None,
    unread: bool | None = None,
) -> MailboxFilters:
    """Normalize raw filter values, rejecting anything malformed."""
    try:
        mailbox = Mailbox(mailbox)
    except ValueError as exc:
        raise InvalidRequestError("invalid_mailbox", field="mailbox") from exc
    try:
        group_by = MailboxGroupBy(group_by)
    except ValueError as exc:
        raise InvalidRequestError("invalid_group_by", field="group_by") from exc
    try:
        order = SortOrder(order)
    except ValueError as exc:
        raise InvalidRequestError("invalid_order", field="order") from exc
    if limit is None:
        limit = settings.MAILBOX_DEFAULT_LIMIT
    if page < 1:
        raise InvalidRequestError("invalid_page", field="page")
    if limit < 1 or limit > settings.MAILBOX_MAX_LIMIT:
        raise InvalidRequestError("invalid_limit", field="limit")
    return MailboxFilters(
        mailbox=mailbox,
        search=clean_single_line(search),
        group_by=group_by,
        order=order,
        page=page,
        limit=limit,
        unread=unread,
    )


# ----- mailbox partitions -----


def _has_flag_for(username: str) -> ColumnElement[bool]:
    return (
        select(NotificationRecipient.id)
        .where(
            NotificationRecipient.notification_id == Notification.id,
            NotificationRecipient.username == username,
        )
        .exists()
    )


def _has_replies() -> ColumnElement[bool]:
    return select(Reply.id).where(Reply.reply_to == Notification.id).exists()


def _partition(viewer: Viewer, mailbox: Mailbox) -> ColumnElement[bool]:
    username = viewer.username
    if mailbox == Mailbox.inbox:
        return and_(Notification.sender_username != username, _has_flag_for(username))
    if mailbox == Mailbox.sent:
        return Notification.sender_username == username
    if mailbox == Mailbox.club:
        if is_super_admin(viewer):
            return Notification.club_name.is_not(None)
        clubs = officer_clubs(viewer)
        return Notification.club_name.in_(clubs) if clubs else false()
    if mailbox == Mailbox.report:
        return Notification.type == NotificationType.report
    if mailbox == Mailbox.conversation:
        return and_(
            or_(Notification.sender_username == username, Notification.recipient_username == username),
            _has_replies(),
        )
    parts = [_partition(viewer, box) for box in visible_mailboxes(viewer) if box != Mailbox.all]
    return or_(*parts)


def _matches_search(term: str) -> ColumnElement[bool]:
    in_reply = (
        select(Reply.id)
        .where(Reply.reply_to == Notification.id, Reply.message.icontains(term, autoescape=True))
        .exists()
    )
    return or_(Notification.message.icontains(term, autoescape=True), in_reply)


def _load_threads(db: Session, roots: list[Notification], username: str) -> list[ThreadView]:
    if not roots:
        return []
    root_ids = [root.id for root in roots]
    replies = db.execute(select(Notification).where(Notification.reply_to.in_(root_ids))).scalars().all()
    by_root: dict[int, list[Notification]] = {}
    for reply in replies:
        by_root.setdefault(reply.reply_to, []).append(reply)
    return [resolve_thread(root, by_root.get(root.id, []), username) for root in roots]


def _sort_threads(threads: list[ThreadView], group_by: MailboxGroupBy, order: SortOrder) -> list[ThreadView]:
    descending = order == SortOrder.desc
    # Tie-break first (newest first); the primary sort is stable on top of it.
    ordered = sorted(threads, key=lambda t: (t.created_at, t.id), reverse=True)
    if group_by == MailboxGroupBy.created:
        return sorted(ordered, key=lambda t: (t.created_at, t.id), reverse=descending)
    if group_by == MailboxGroupBy.type:
        return sorted(ordered, key=lambda t: t.type.value, reverse=descending)
    return sorted(ordered, key=lambda t: t.is_unread, reverse=descending)


def query_mailbox(db: Session, viewer: Viewer | None, filters: MailboxFilters) -> MailboxPage:
    viewer = require_viewer(viewer)
    if not can_view_mailbox(viewer, filters.mailbox):
        logger.warning("Mailbox %s denied for %s", filters.mailbox.value, viewer.username)
        raise InsufficientPermissionsError("mailbox_forbidden", details={"mailbox": filters.mailbox.value})
    if filters.page < 1 or filters.limit < 1:
        raise InvalidRequestError("invalid_pagination", field="page" if filters.page < 1 else "limit")

    def _read() -> list[ThreadView]:
        query = select(Notification).where(
            Notification.reply_to.is_(None),
            _partition(viewer, filters.mailbox),
        )
        if filters.search:
            query = query.where(_matches_search(filters.search))
        roots = list(db.execute(query).scalars().all())
        return _load_threads(db, roots, viewer.username)

    threads = run_read(db, "query_mailbox", _read)
    if filters.unread is not None:
        threads = [thread for thread in threads if thread.is_unread == filters.unread]

    threads = _sort_threads(threads, filters.group_by, filters.order)
    total = len(threads)
    pages = math.ceil(total / filters.limit)
    start = (filters.page - 1) * filters.limit
    return MailboxPage(
        items=threads[start : start + filters.limit],
        page=filters.page,
        pages=pages,
        total=total,
    )


# ----- single thread and read state -----


def _get_message(db: Session, notification_id: int) -> Notification:
    record = run_read(db, "get_notification", lambda: db.get(Notification, notification_id))
    if record is None:
        raise NotFoundError("notification_not_found", details={"notification_id": notification_id})
    return record


def _thread_members(db: Session, root: Notification) -> list[Notification]:
    replies = db.execute(select(Notification).where(Notification.reply_to == root.id)).scalars().all()
    return [root, *replies]


def _can_view_thread(viewer: Viewer, messages: list[Notification]) -> bool:
    root = messages[0]
    if any(m.sender_username == viewer.username or is_recipient(m, viewer.username) for m in messages):
        return True
    if root.club_name and (is_super_admin(viewer) or is_club_officer(viewer, root.club_name)):
        return True
    return NotificationType(root.type) == NotificationType.report and is_super_admin(viewer)


def _apply_read_state(db: Session, username: str, notification_ids: list[int], read: bool) -> int:
    result = db.execute(
        update(NotificationRecipient)
        .where(
            NotificationRecipient.notification_id.in_(notification_ids),
            NotificationRecipient.username == username,
            NotificationRecipient.is_read != read,
        )
        .values(is_read=read, read_at=utcnow() if read else None)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


def get_thread(
    db: Session,
    viewer: Viewer | None,
    notification_id: int,
    *,
    mark_read: bool | None = None,
) -> ThreadView:
    """Return the thread containing ``notification_id`` for the viewer.

    Viewing a thread marks the viewer's own flags in it read unless
    ``mark_read`` is False.
    """
    viewer = require_viewer(viewer)
    record = _get_message(db, notification_id)
    root = record if record.is_root else _get_message(db, record.reply_to)
    messages = run_read(db, "get_thread", lambda: _thread_members(db, root))
    if not _can_view_thread(viewer, messages):
        raise InsufficientPermissionsError("thread_forbidden", details={"notification_id": notification_id})

    should_mark = settings.MARK_READ_ON_VIEW if mark_read is None else mark_read
    if should_mark and any(is_recipient(m, viewer.username) for m in messages):
        ids = [m.id for m in messages]
        run_write(db, "mark_read_on_view", lambda: _apply_read_state(db, viewer.username, ids, True))
    return run_read(db, "get_thread", lambda: resolve_thread(root, messages[1:], viewer.username))


def set_read_state(db: Session, viewer: Viewer | None, notification_id: int, read: bool) -> int:
    """Flip the viewer's read flags; on a root this covers the whole thread.

    Returns the number of flags that changed. Other recipients' flags are
    never touched.
    """
    viewer = require_viewer(viewer)
    record = _get_message(db, notification_id)
    if record.is_root:
        targets = run_read(db, "set_read_state", lambda: _thread_members(db, record))
    else:
        targets = [record]
    if not any(is_recipient(message, viewer.username) for message in targets):
        raise InsufficientPermissionsError("nothing_to_mark", details={"notification_id": notification_id})

    ids = [message.id for message in targets]
    changed = run_write(db, "set_read_state", lambda: _apply_read_state(db, viewer.username, ids, read))
    logger.info(
        "Read state set: id=%s viewer=%s read=%s changed=%s", notification_id, viewer.username, read, changed
    )
    return changed


def mark_all_read(db: Session, viewer: Viewer | None) -> int:
    viewer = require_viewer(viewer)

    def _write() -> int:
        result = db.execute(
            update(NotificationRecipient)
            .where(NotificationRecipient.username == viewer.username, NotificationRecipient.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    changed = run_write(db, "mark_all_read", _write)
    logger.info("All notifications marked read: viewer=%s changed=%s", viewer.username, changed)
    return changed


def count_unread_threads(db: Session, viewer: Viewer | None) -> int:
    viewer = require_viewer(viewer)
    thread_id = func.coalesce(Notification.reply_to, Notification.id)
    query = (
        select(func.count(func.distinct(thread_id)))
        .select_from(Notification)
        .join(NotificationRecipient, NotificationRecipient.notification_id == Notification.id)
        .where(NotificationRecipient.username == viewer.username, NotificationRecipient.is_read.is_(False))
    )
    return int(run_read(db, "count_unread_threads", lambda: db.execute(query).scalar_one()) or 0)
