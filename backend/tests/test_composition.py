from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from clubhub.core.exceptions import (
    InsufficientPermissionsError,
    InvalidRequestError,
    NotAuthenticatedError,
    NotFoundError,
    StoreUnavailableError,
)
from clubhub.models.enums import NotificationType, SendMode
from clubhub.models.notification import Notification, NotificationRecipient
from clubhub.services.composition import reply_to_notification, send_notification


def _count(db, model) -> int:  # noqa: ANN001
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def _flags(db, notification_id: int) -> dict[str, bool]:  # noqa: ANN001
    rows = db.execute(
        select(NotificationRecipient).where(NotificationRecipient.notification_id == notification_id)
    ).scalars()
    return {row.username: row.is_read for row in rows}


def test_club_broadcast_fans_out_to_members_except_sender(db, viewer) -> None:
    record = send_notification(
        db,
        viewer("bob"),
        mode=SendMode.club_broadcast,
        message="Tournament on Friday",
        notification_type=NotificationType.event,
    )

    assert record.club_name == "Chess Club"
    assert record.recipient_username is None
    assert record.type == NotificationType.event
    assert _flags(db, record.id) == {"dave": False, "erin": False, "frank": False, "gina": False}


def test_broadcast_skips_pending_applicants(db, viewer) -> None:
    record = send_notification(
        db, viewer("carol"), mode=SendMode.club_broadcast, club_name="Drama Club", message="Rehearsal moved"
    )

    assert _flags(db, record.id) == {"hank": False}


def test_broadcast_without_officer_role_is_forbidden_and_writes_nothing(db, viewer) -> None:
    with pytest.raises(InsufficientPermissionsError):
        send_notification(db, viewer("dave"), mode=SendMode.club_broadcast, club_name="Chess Club", message="hi")

    assert _count(db, Notification) == 0
    assert _count(db, NotificationRecipient) == 0


def test_multi_club_officer_needs_explicit_club(db, viewer) -> None:
    with pytest.raises(InvalidRequestError):
        send_notification(db, viewer("carol"), mode=SendMode.club_broadcast, message="which club?")
    assert _count(db, Notification) == 0


def test_admin_broadcast_to_unknown_club_is_not_found(db, viewer) -> None:
    with pytest.raises(NotFoundError):
        send_notification(db, viewer("root"), mode=SendMode.club_broadcast, club_name="Nope Club", message="x")


def test_report_reaches_every_admin(db, viewer) -> None:
    record = send_notification(db, viewer("alice"), mode=SendMode.report, message="bug")

    assert record.type == NotificationType.report
    assert record.recipient_username is None and record.club_name is None
    assert _flags(db, record.id) == {"principal": False, "root": False}


def test_admin_cannot_file_a_report(db, viewer) -> None:
    with pytest.raises(InsufficientPermissionsError):
        send_notification(db, viewer("root"), mode=SendMode.report, message="escalate to myself")


def test_individual_message_validation(db, viewer) -> None:
    with pytest.raises(InvalidRequestError):
        send_notification(db, viewer("carol"), mode=SendMode.individual, recipient_username="dave", message="  ")
    with pytest.raises(NotFoundError):
        send_notification(db, viewer("carol"), mode=SendMode.individual, recipient_username="zed", message="hi")
    with pytest.raises(InvalidRequestError):
        send_notification(
            db,
            viewer("carol"),
            mode=SendMode.individual,
            recipient_username="dave",
            message="hi",
            notification_type=NotificationType.report,
        )
    assert _count(db, Notification) == 0


def test_anonymous_send_is_rejected(db, directory) -> None:
    with pytest.raises(NotAuthenticatedError):
        send_notification(db, None, mode=SendMode.report, message="bug")


def test_reply_goes_to_the_other_party(db, viewer) -> None:
    root = send_notification(db, viewer("carol"), mode=SendMode.individual, recipient_username="dave", message="hi")

    reply = reply_to_notification(db, viewer("dave"), root.id, "hello back")
    second = reply_to_notification(db, viewer("carol"), root.id, "great")

    assert reply.reply_to == root.id
    assert reply.recipient_username == "carol"
    assert reply.club_name is None
    assert reply.type == NotificationType.email
    assert _flags(db, reply.id) == {"carol": False}
    assert second.recipient_username == "dave"
    assert second.reply_to == root.id


def test_reply_to_broadcast_is_rejected(db, viewer) -> None:
    broadcast = send_notification(db, viewer("bob"), mode=SendMode.club_broadcast, message="meeting")

    with pytest.raises(InsufficientPermissionsError):
        reply_to_notification(db, viewer("dave"), broadcast.id, "can I reply?")


def test_reply_rules_for_reports_outsiders_and_nested_replies(db, viewer) -> None:
    report = send_notification(db, viewer("alice"), mode=SendMode.report, message="bug")
    root = send_notification(db, viewer("carol"), mode=SendMode.individual, recipient_username="dave", message="hi")
    reply = reply_to_notification(db, viewer("dave"), root.id, "yo")

    with pytest.raises(InsufficientPermissionsError):
        reply_to_notification(db, viewer("root"), report.id, "thanks")
    with pytest.raises(InsufficientPermissionsError):
        reply_to_notification(db, viewer("erin"), root.id, "butting in")
    with pytest.raises(InsufficientPermissionsError):
        reply_to_notification(db, viewer("carol"), reply.id, "nested")
    with pytest.raises(NotFoundError):
        reply_to_notification(db, viewer("carol"), 9999, "missing")


def test_store_failure_rolls_back_whole_broadcast(db, viewer, monkeypatch) -> None:
    bob = viewer("bob")

    def _broken_flush(*args, **kwargs):  # noqa: ANN002, ANN003
        raise OperationalError("INSERT INTO notification_recipients", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "flush", _broken_flush)

    with pytest.raises(StoreUnavailableError):
        send_notification(db, bob, mode=SendMode.club_broadcast, message="Tournament on Friday")

    monkeypatch.undo()
    assert _count(db, Notification) == 0
    assert _count(db, NotificationRecipient) == 0


def test_reload_after_commit_retries_transient_failure(db, viewer, monkeypatch) -> None:
    carol = viewer("carol")
    real_refresh = db.refresh
    calls: list[object] = []

    def _flaky_refresh(instance, *args, **kwargs):  # noqa: ANN001, ANN002, ANN003
        calls.append(instance)
        if len(calls) == 1:
            raise OperationalError("SELECT notifications", {}, Exception("connection reset"))
        return real_refresh(instance, *args, **kwargs)

    monkeypatch.setattr(db, "refresh", _flaky_refresh)
    record = send_notification(
        db, carol, mode=SendMode.individual, recipient_username="dave", message="See you at practice"
    )

    assert len(calls) == 2
    monkeypatch.undo()
    assert record.recipient_username == "dave"
    assert _flags(db, record.id) == {"dave": False}


def test_reload_failure_after_commit_is_store_unavailable(db, viewer, monkeypatch) -> None:
    carol = viewer("carol")
    root = send_notification(db, carol, mode=SendMode.individual, recipient_username="dave", message="hi")
    dave = viewer("dave")

    def _down(*args, **kwargs):  # noqa: ANN002, ANN003
        raise OperationalError("SELECT notifications", {}, Exception("server closed the connection"))

    monkeypatch.setattr(db, "refresh", _down)
    with pytest.raises(StoreUnavailableError):
        reply_to_notification(db, dave, root.id, "On my way")

    monkeypatch.undo()
    assert _count(db, Notification) == 2
