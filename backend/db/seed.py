"""Seed the database with the legislative meeting calendar."""
from typing import Optional

from sqlalchemy.orm import Session

from backend.config import CALENDAR_YEAR
from backend.db.models import Meeting
from backend.services.calendar import annual_schedule, ensure_meetings_generated


def seed_calendar(db: Session, year: Optional[int] = None) -> list[Meeting]:
    """Insert the year's meetings that are not already in the database."""
    return ensure_meetings_generated(db, annual_schedule(year or CALENDAR_YEAR))
