from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship
import enum


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class MeetingStatus(str, enum.Enum):
    upcoming = "upcoming"
    in_progress = "in_progress"
    completed = "completed"


class DocketStatus(str, enum.Enum):
    new = "new"
    reviewed = "reviewed"
    accepted = "accepted"
    needs_info = "needs_info"
    rejected = "rejected"
    on_agenda = "on_agenda"


ORDINANCE_ITEM_TYPES = ("ordinance_new", "ordinance_amendment")

# accepted and on_agenda both mean "will appear on an agenda"
AGENDA_STATUSES = (DocketStatus.accepted, DocketStatus.on_agenda)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


class Meeting(Base):
    __tablename__ = "meeting"

    id = Column(Integer, primary_key=True, autoincrement=True)
    meeting_type = Column(String(50), nullable=False)  # work_session, regular, etc.
    meeting_date = Column(Date, nullable=False, index=True)
    meeting_time = Column(Time)
    cycle_date = Column(Date, nullable=False, index=True)
    video_url = Column(String(1000))
    minutes = Column(Text, nullable=False, default="")
    status = Column(
        Enum(MeetingStatus), nullable=False, default=MeetingStatus.upcoming
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    __table_args__ = (
        UniqueConstraint("meeting_type", "meeting_date", name="uq_meeting_type_date"),
    )


class DocketItem(Base):
    __tablename__ = "docket_item"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email_id = Column(String(255), unique=True, nullable=False)
    email_from = Column(String(500), nullable=False, default="")
    email_subject = Column(String(1000), nullable=False, default="")
    email_date = Column(Date)
    email_body_preview = Column(Text, nullable=False, default="")
    relevant = Column(Boolean, nullable=False, default=False)
    confidence = Column(String(20))
    item_type = Column(String(100), index=True)
    department = Column(String(255))
    summary = Column(Text)
    extracted_fields = Column(JSON, nullable=False, default=dict)
    completeness = Column(JSON, nullable=False, default=dict)
    attachment_filenames = Column(JSON, nullable=False, default=list)
    status = Column(
        Enum(DocketStatus), nullable=False, default=DocketStatus.new, index=True
    )
    notes = Column(Text, nullable=False, default="")
    target_meeting_date = Column(Date, index=True)
    text_override = Column(JSON)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    tracking = relationship(
        "OrdinanceTracking", back_populates="docket_item", uselist=False
    )

    @property
    def is_ordinance(self) -> bool:
        return self.item_type in ORDINANCE_ITEM_TYPES


class OrdinanceTracking(Base):
    __tablename__ = "ordinance_tracking"

    id = Column(Integer, primary_key=True, autoincrement=True)
    docket_id = Column(
        Integer, ForeignKey("docket_item.id"), unique=True, nullable=False
    )
    ordinance_number = Column(String(100))
    introduction_date = Column(Date)
    introduction_meeting = Column(String(255))
    pub_intro_date = Column(Date)
    pub_intro_newspaper = Column(String(255))
    bulletin_posted_date = Column(Date)
    hearing_date = Column(Date)
    hearing_amended = Column(Boolean, nullable=False, default=False)
    hearing_notes = Column(Text, nullable=False, default="")
    adoption_date = Column(Date)
    adoption_vote = Column(String(255))
    adoption_failed = Column(Boolean, nullable=False, default=False)
    pub_final_date = Column(Date)
    pub_final_newspaper = Column(String(255))
    effective_date = Column(Date)
    is_emergency = Column(Boolean, nullable=False, default=False)
    website_posted_date = Column(Date)
    website_url = Column(String(1000))
    clerk_notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    docket_item = relationship("DocketItem", back_populates="tracking")


class HistoryEntry(Base):
    __tablename__ = "history_entry"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_type = Column(String(50), nullable=False)  # docket, meeting, ordinance
    owner_id = Column(Integer, nullable=False)
    field_name = Column(String(100), nullable=False)
    old_value = Column(Text, nullable=False)
    new_value = Column(Text, nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
