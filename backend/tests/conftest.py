from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import clubhub.models  # noqa: E402,F401
from clubhub.db.base import Base  # noqa: E402
from clubhub.models.enums import ClubRole  # noqa: E402
from clubhub.models.person import Club, Membership, Person  # noqa: E402
from clubhub.services.directory import load_viewer  # noqa: E402

ADMINS = ("root", "principal")
STUDENTS = ("alice", "bob", "carol", "dave", "erin", "frank", "gina", "hank")
CLUBS = {
    "Chess Club": [
        ("bob", ClubRole.leader),
        ("dave", ClubRole.member),
        ("erin", ClubRole.member),
        ("frank", ClubRole.member),
        ("gina", ClubRole.member),
    ],
    "Drama Club": [
        ("carol", ClubRole.leader),
        ("hank", ClubRole.member),
        ("erin", ClubRole.student),
    ],
    "Art Club": [
        ("carol", ClubRole.vice_president),
        ("gina", ClubRole.member),
    ],
}


@pytest.fixture()
def engine():
    # StaticPool keeps one in-memory database across connections.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def directory(db):
    for username in ADMINS:
        db.add(Person(username=username, email=f"{username}@school.example", is_admin=True))
    for username in STUDENTS:
        db.add(Person(username=username, email=f"{username}@school.example", is_admin=False))
    for club_name in CLUBS:
        db.add(Club(club_name=club_name, description=f"{club_name} for tests", member_max=20))
    db.flush()
    for club_name, members in CLUBS.items():
        for username, role in members:
            db.add(Membership(username=username, club_name=club_name, role=role))
    db.commit()
    return CLUBS


@pytest.fixture()
def viewer(db, directory):
    def _load(username: str):
        loaded = load_viewer(db, username)
        assert loaded is not None, username
        return loaded

    return _load
