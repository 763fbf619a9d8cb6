from __future__ import annotations

import datetime as dt
from types import SimpleNamespace

from clubhub.models.enums import NotificationType
from clubhub.services.threads import is_unread_for, resolve_thread

BASE = dt.datetime(2026, 10, 1, 9, 0, tzinfo=dt.timezone.utc)


def _message(
    id: int,
    *,
    sender: str,
    recipient: str | None = None,
    club: str | None = None,
    type: NotificationType = NotificationType.email,
    reply_to: int | None = None,
    minutes: int = 0,
    flags: dict[str, bool] | None = None,
):
    return SimpleNamespace(
        id=id,
        sender_username=sender,
        recipient_username=recipient,
        club_name=club,
        type=type,
        message=f"message {id}",
        link=None,
        created_at=BASE + dt.timedelta(minutes=minutes),
        reply_to=reply_to,
        recipients=[SimpleNamespace(username=name, is_read=read) for name, read in (flags or {}).items()],
    )


def test_single_message_is_unread_only_for_its_recipient() -> None:
    root = _message(1, sender="carol", recipient="dave", flags={"dave": False})

    for_dave = resolve_thread(root, [], "dave")
    for_carol = resolve_thread(root, [], "carol")

    assert for_dave.is_unread
    assert not for_dave.is_conversation
    assert for_dave.has_received_messages
    assert not for_carol.is_unread
    assert for_carol.is_sent
    assert not for_carol.has_received_messages
    assert for_carol.root.is_read


def test_conversation_unread_tracks_each_party_independently() -> None:
    root = _message(1, sender="carol", recipient="dave", flags={"dave": True})
    reply = _message(2, sender="dave", recipient="carol", reply_to=1, minutes=5, flags={"carol": False})

    for_carol = resolve_thread(root, [reply], "carol")
    for_dave = resolve_thread(root, [reply], "dave")

    assert for_carol.is_conversation
    assert for_carol.is_unread
    assert for_carol.unread_count == 1
    assert for_carol.has_received_messages
    assert not for_dave.is_unread
    assert for_dave.last_activity_at == reply.created_at


def test_replies_are_ordered_oldest_first_and_foreign_replies_ignored() -> None:
    root = _message(1, sender="carol", recipient="dave")
    late = _message(3, sender="carol", recipient="dave", reply_to=1, minutes=20)
    early = _message(2, sender="dave", recipient="carol", reply_to=1, minutes=10)
    other_thread = _message(9, sender="erin", recipient="carol", reply_to=7, minutes=1)

    view = resolve_thread(root, [late, other_thread, early], "carol")

    assert [reply.id for reply in view.replies] == [2, 3]
    assert view.has_replies
    assert view.replies[0].is_mine is False
    assert view.replies[1].is_mine is True


def test_club_wide_and_report_flags() -> None:
    broadcast = _message(
        1,
        sender="bob",
        club="Chess Club",
        type=NotificationType.event,
        flags={"dave": False, "erin": True},
    )
    report = _message(2, sender="alice", type=NotificationType.report, flags={"root": False})

    as_bob = resolve_thread(broadcast, [], "bob")
    as_erin = resolve_thread(broadcast, [], "erin")
    as_admin = resolve_thread(report, [], "root")

    assert as_bob.is_club_wide and not as_bob.is_person_to_person
    assert not as_bob.is_unread
    assert not as_erin.is_unread
    assert resolve_thread(broadcast, [], "dave").is_unread
    assert as_admin.is_report and not as_admin.is_club_wide
    assert as_admin.is_unread


def test_sender_never_sees_own_message_unread() -> None:
    root = _message(1, sender="carol", recipient="dave", flags={"dave": False})

    assert not is_unread_for(root, "carol")
    assert is_unread_for(root, "dave")
    assert not is_unread_for(root, "erin")
