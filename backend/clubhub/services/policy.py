"""Send authorization: who may send what, and to whom it resolves."""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from clubhub.core.exceptions import InsufficientPermissionsError, InvalidRequestError, NotFoundError
from clubhub.core.rbac import Viewer, is_super_admin, require_viewer, resolve_broadcast_club
from clubhub.models.enums import NotificationType, SendMode
from clubhub.services import directory

INDIVIDUAL_TYPES = frozenset({NotificationType.email, NotificationType.event, NotificationType.membership})
BROADCAST_TYPES = frozenset({NotificationType.event, NotificationType.membership, NotificationType.email})


@dataclass(frozen=True)
class SendPlan:
    mode: SendMode
    type: NotificationType
    recipients: tuple[str, ...] = field(default_factory=tuple)
    recipient_username: str | None = None
    club_name: str | None = None


def _pick_type(
    requested: NotificationType | None,
    *,
    default: NotificationType,
    allowed: frozenset[NotificationType],
) -> NotificationType:
    chosen = requested or default
    if chosen not in allowed:
        raise InvalidRequestError("notification_type_not_allowed", field="type")
    return chosen


def authorize_send(
    db: Session,
    viewer: Viewer | None,
    mode: SendMode,
    *,
    club_name: str | None = None,
    recipient_username: str | None = None,
    notification_type: NotificationType | None = None,
) -> SendPlan:
    viewer = require_viewer(viewer)

    if mode == SendMode.report:
        if is_super_admin(viewer):
            raise InsufficientPermissionsError("report_from_admin_forbidden")
        if notification_type not in (None, NotificationType.report):
            raise InvalidRequestError("notification_type_not_allowed", field="type")
        admins = [name for name in directory.list_admin_usernames(db) if name != viewer.username]
        if not admins:
            raise NotFoundError("no_administrators")
        return SendPlan(mode=mode, type=NotificationType.report, recipients=tuple(admins))

    if mode == SendMode.club_broadcast:
        target = resolve_broadcast_club(viewer, club_name)
        if not directory.club_exists(db, target):
            raise NotFoundError("club_not_found", details={"club_name": target})
        kind = _pick_type(notification_type, default=NotificationType.event, allowed=BROADCAST_TYPES)
        members = directory.list_club_member_usernames(db, target, lock=True)
        recipients = tuple(name for name in members if name != viewer.username)
        return SendPlan(mode=mode, type=kind, recipients=recipients, club_name=target)

    if mode == SendMode.individual:
        if not recipient_username:
            raise InvalidRequestError("recipient_required", field="recipient_username")
        if directory.get_person(db, recipient_username) is None:
            raise NotFoundError("recipient_not_found", details={"recipient_username": recipient_username})
        if recipient_username == viewer.username:
            raise InvalidRequestError("cannot_message_self", field="recipient_username")
        kind = _pick_type(notification_type, default=NotificationType.email, allowed=INDIVIDUAL_TYPES)
        return SendPlan(
            mode=mode,
            type=kind,
            recipients=(recipient_username,),
            recipient_username=recipient_username,
        )

    raise InvalidRequestError("unknown_send_mode", field="mode")
