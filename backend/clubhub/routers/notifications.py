"""Notifications API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Path, Query, status
from sqlalchemy.orm import Session

from clubhub.core.deps import get_current_viewer
from clubhub.core.rate_limit import rate_limit
from clubhub.core.rbac import Viewer
from clubhub.db.session import get_db
from clubhub.schemas.notification import (
    MailboxPageOut,
    NotificationCreatedOut,
    NotificationReply,
    NotificationSend,
    NotificationUnreadCountOut,
    ReadStateOut,
    ThreadOut,
)
from clubhub.services.composition import reply_to_notification, send_notification
from clubhub.services.mailbox import (
    build_filters,
    count_unread_threads,
    get_thread,
    mark_all_read,
    query_mailbox,
    set_read_state,
)

router = APIRouter(dependencies=[Depends(rate_limit())])


@router.get("/", response_model=MailboxPageOut)
def get_mailbox(
    q: str | None = Query(default=None, max_length=200),
    mailbox: str = Query(default="all"),
    group_by: str = Query(default="created", alias="groupBy"),
    order: str = Query(default="desc"),
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
    unread: bool | None = Query(default=None),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
) -> MailboxPageOut:
    filters = build_filters(
        mailbox=mailbox,
        search=q,
        group_by=group_by,
        order=order,
        page=page,
        limit=limit,
        unread=unread,
    )
    return MailboxPageOut.model_validate(query_mailbox(db, viewer, filters))


@router.get("/unread-count", response_model=NotificationUnreadCountOut)
def get_unread_count(
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
) -> NotificationUnreadCountOut:
    return NotificationUnreadCountOut(count=count_unread_threads(db, viewer))


@router.get("/{notification_id}", response_model=ThreadOut)
def get_notification_thread(
    notification_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
) -> ThreadOut:
    return ThreadOut.model_validate(get_thread(db, viewer, notification_id))


@router.post(
    "/",
    response_model=NotificationCreatedOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("compose"))],
)
def post_notification(
    payload: NotificationSend = Body(...),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
) -> NotificationCreatedOut:
    record = send_notification(
        db,
        viewer,
        mode=payload.mode,
        message=payload.message,
        notification_type=payload.type,
        link=payload.link,
        recipient_username=payload.recipient_username,
        club_name=payload.club_name,
    )
    return NotificationCreatedOut(id=record.id)


@router.post(
    "/{notification_id}/reply",
    response_model=NotificationCreatedOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("compose"))],
)
def post_reply(
    notification_id: int = Path(..., ge=1),
    payload: NotificationReply = Body(...),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
) -> NotificationCreatedOut:
    record = reply_to_notification(db, viewer, notification_id, payload.message, link=payload.link)
    return NotificationCreatedOut(id=record.id)


@router.put("/{notification_id}/read", response_model=ReadStateOut)
def read_notification(
    notification_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
) -> ReadStateOut:
    return ReadStateOut(updated=set_read_state(db, viewer, notification_id, True))


@router.put("/{notification_id}/unread", response_model=ReadStateOut)
def unread_notification(
    notification_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
) -> ReadStateOut:
    return ReadStateOut(updated=set_read_state(db, viewer, notification_id, False))


@router.post("/read-all", response_model=ReadStateOut)
def read_all_notifications(
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
) -> ReadStateOut:
    return ReadStateOut(updated=mark_all_read(db, viewer))
