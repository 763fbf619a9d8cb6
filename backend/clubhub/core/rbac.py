"""Viewer identity and the role rules behind sending and mailbox access."""

from __future__ import annotations

from dataclasses import dataclass, field

from clubhub.core.exceptions import InsufficientPermissionsError, InvalidRequestError, NotAuthenticatedError
from clubhub.models.enums import OFFICER_ROLES, ClubRole, Mailbox
from clubhub.models.person import Person


@dataclass(frozen=True)
class ClubMembership:
    club_name: str
    role: ClubRole


@dataclass(frozen=True)
class Viewer:
    """Authenticated caller, passed explicitly into every mailbox operation."""

    username: str
    is_admin: bool = False
    memberships: tuple[ClubMembership, ...] = field(default_factory=tuple)

    @classmethod
    def from_person(cls, person: Person) -> "Viewer":
        return cls(
            username=person.username,
            is_admin=bool(person.is_admin),
            memberships=tuple(
                ClubMembership(club_name=m.club_name, role=ClubRole(m.role)) for m in person.memberships
            ),
        )


def require_viewer(viewer: Viewer | None) -> Viewer:
    if viewer is None or not viewer.username:
        raise NotAuthenticatedError()
    return viewer


def is_super_admin(viewer: Viewer) -> bool:
    return viewer.is_admin


def officer_clubs(viewer: Viewer) -> list[str]:
    """Clubs where the viewer holds CL or VP, sorted by name."""
    return sorted({m.club_name for m in viewer.memberships if m.role in OFFICER_ROLES})


def is_club_officer(viewer: Viewer, club_name: str) -> bool:
    return club_name in officer_clubs(viewer)


def can_broadcast_to(viewer: Viewer, club_name: str) -> bool:
    return is_super_admin(viewer) or is_club_officer(viewer, club_name)


def resolve_broadcast_club(viewer: Viewer, club_name: str | None) -> str:
    """Pick the target club of a broadcast or reject the request.

    A sender who leads exactly one club may omit the club. Super admins and
    officers of several clubs must name one explicitly.
    """
    eligible = officer_clubs(viewer)
    if club_name:
        if not can_broadcast_to(viewer, club_name):
            raise InsufficientPermissionsError("club_broadcast_forbidden", details={"club_name": club_name})
        return club_name
    if not is_super_admin(viewer) and len(eligible) == 1:
        return eligible[0]
    if not is_super_admin(viewer) and not eligible:
        raise InsufficientPermissionsError("club_broadcast_forbidden")
    raise InvalidRequestError("club_name_required", field="club_name")


def can_view_mailbox(viewer: Viewer, mailbox: Mailbox) -> bool:
    if mailbox == Mailbox.report:
        return is_super_admin(viewer)
    if mailbox == Mailbox.club:
        return is_super_admin(viewer) or bool(officer_clubs(viewer))
    return True


def visible_mailboxes(viewer: Viewer) -> list[Mailbox]:
    return [mailbox for mailbox in Mailbox if can_view_mailbox(viewer, mailbox)]

