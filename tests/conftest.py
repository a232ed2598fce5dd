"""Shared fixtures: in-memory database, meeting calendar, docket item factory."""
import os

# Must be set before backend.db.session is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, time
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.db.models import Base, DocketItem, DocketStatus
from backend.db.session import enable_sqlite_savepoints, get_db
from backend.main import app
from backend.services.calendar import biweekly_schedule, ensure_meetings_generated


# ===== Database =====


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


# ===== Calendar =====


def schedule_2026():
    """Biweekly 2026 cycle: work sessions on Mondays from Jan 12, regular meetings on Wednesdays."""
    return biweekly_schedule(
        date(2026, 1, 1),
        date(2026, 12, 31),
        anchor=date(2026, 1, 12),
        offsets={"work_session": 0, "regular": 2},
        start_time=time(19, 0),
    )


@pytest.fixture
def calendar(db):
    return ensure_meetings_generated(db, schedule_2026())


# ===== Docket items =====


@pytest.fixture
def make_item(db):
    seq = count(1)

    def _make(**overrides) -> DocketItem:
        n = next(seq)
        values = {
            "email_id": f"msg-{n}",
            "email_from": "Caruso, Thomas <caruso@example.org>",
            "email_subject": f"Ordinance submission {n}",
            "email_date": date(2026, 1, 7),
            "relevant": True,
            "item_type": "ordinance_new",
            "department": "Law",
            "extracted_fields": {},
            "completeness": {},
            "attachment_filenames": [],
            "status": DocketStatus.reviewed,
            "notes": "",
        }
        values.update(overrides)
        item = DocketItem(**values)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    return _make


# ===== API =====


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    # Not used as a context manager so the startup calendar seed does not run
    yield TestClient(app)
    app.dependency_overrides.clear()
