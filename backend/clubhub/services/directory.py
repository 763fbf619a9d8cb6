"""Read-only lookups against the club directory (persons, clubs, memberships)."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from clubhub.core.rbac import Viewer
from clubhub.models.enums import ClubRole
from clubhub.models.person import Club, Membership, Person


def get_person(db: Session, username: str) -> Person | None:
    return db.get(Person, username)


def load_viewer(db: Session, username: str) -> Viewer | None:
    person = db.execute(
        select(Person).options(selectinload(Person.memberships)).where(Person.username == username)
    ).scalar_one_or_none()
    if person is None:
        return None
    return Viewer.from_person(person)


def club_exists(db: Session, club_name: str) -> bool:
    return db.get(Club, club_name) is not None


def list_club_member_usernames(db: Session, club_name: str, *, lock: bool = False) -> list[str]:
    """Accepted members of a club; pending applicants (STU) are left out."""
    query = (
        select(Membership.username)
        .where(Membership.club_name == club_name, Membership.role != ClubRole.student)
        .order_by(Membership.username)
    )
    if lock:
        # Shared lock keeps the member set stable until the broadcast commits.
        query = query.with_for_update(read=True)
    return list(db.execute(query).scalars().all())


def list_admin_usernames(db: Session) -> list[str]:
    query = select(Person.username).where(Person.is_admin.is_(True)).order_by(Person.username)
    return list(db.execute(query).scalars().all())
