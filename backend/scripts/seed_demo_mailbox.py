"""Seed a small club directory and a few threads for local mailbox checks."""

from __future__ import annotations

import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from clubhub.core.rbac import Viewer  # noqa: E402
from clubhub.db.session import SessionLocal  # noqa: E402
from clubhub.models.enums import ClubRole, NotificationType, SendMode  # noqa: E402
from clubhub.models.person import Club, Membership, Person  # noqa: E402
from clubhub.services.composition import reply_to_notification, send_notification  # noqa: E402
from clubhub.services.directory import load_viewer  # noqa: E402
from clubhub.services.mailbox import build_filters, query_mailbox  # noqa: E402

PERSONS = [
    ("admin", True),
    ("alice", False),
    ("bob", False),
    ("carol", False),
    ("dave", False),
    ("erin", False),
    ("frank", False),
]

CLUBS = {
    "Chess Club": [
        ("bob", ClubRole.leader),
        ("carol", ClubRole.vice_president),
        ("dave", ClubRole.member),
        ("erin", ClubRole.member),
        ("frank", ClubRole.member),
    ],
}


def _viewer(db, username: str) -> Viewer:  # noqa: ANN001
    viewer = load_viewer(db, username)
    if viewer is None:
        raise SystemExit(f"missing person {username}")
    return viewer


def seed() -> None:
    db = SessionLocal()
    try:
        inserted = 0
        for username, is_admin in PERSONS:
            if db.get(Person, username) is None:
                db.add(Person(username=username, email=f"{username}@school.example", is_admin=is_admin))
                inserted += 1
        for club_name, members in CLUBS.items():
            if db.get(Club, club_name) is None:
                db.add(Club(club_name=club_name, description=f"{club_name} demo", member_max=30))
            db.flush()
            for username, role in members:
                exists = (
                    db.query(Membership)
                    .filter(Membership.club_name == club_name, Membership.username == username)
                    .first()
                )
                if exists is None:
                    db.add(Membership(username=username, club_name=club_name, role=role))
        db.commit()

        send_notification(db, _viewer(db, "alice"), mode=SendMode.report, message="bug on the club page")
        send_notification(
            db,
            _viewer(db, "bob"),
            mode=SendMode.club_broadcast,
            message="Tournament on Friday",
            notification_type=NotificationType.event,
            link="/clubs/Chess Club",
        )
        first = send_notification(
            db,
            _viewer(db, "carol"),
            mode=SendMode.individual,
            recipient_username="dave",
            message="Can you bring the spare boards?",
        )
        reply_to_notification(db, _viewer(db, "dave"), first.id, "Sure, see you there.")

        print(f"persons_inserted={inserted}")
        for username in ("admin", "bob", "carol", "dave"):
            page = query_mailbox(db, _viewer(db, username), build_filters(limit=50))
            unread = sum(1 for thread in page.items if thread.is_unread)
            print(f"{username}\ttotal={page.total}\tunread={unread}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
