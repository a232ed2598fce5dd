"""Request bodies for the docket, meeting and ordinance endpoints."""
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class MeetingUpdate(BaseModel):
    video_url: Optional[str] = None
    minutes: Optional[str] = None
    status: Optional[str] = None


class TextOverride(BaseModel):
    whereas: Optional[list[str]] = None
    resolved: Optional[str] = None
    further_resolved: Optional[list[str]] = None
    ordinance_title: Optional[str] = None
    summary: Optional[str] = None


class DocketItemUpdate(BaseModel):
    status: Optional[str] = None
    target_meeting_date: Optional[date] = None
    notes: Optional[str] = None
    item_type: Optional[str] = None
    department: Optional[str] = None
    # Keys explicitly set to null revert that override
    text_override: Optional[TextOverride] = None


class Classification(BaseModel):
    relevant: bool = False
    confidence: Optional[str] = None
    item_type: Optional[str] = None
    department: Optional[str] = None
    summary: Optional[str] = None
    extracted_fields: dict = Field(default_factory=dict)
    completeness: dict = Field(default_factory=dict)


class IntakeSubmission(BaseModel):
    email_id: str
    email_from: str = ""
    email_subject: str = ""
    email_date: Optional[date] = None
    email_body_preview: str = ""
    classification: Classification = Field(default_factory=Classification)
    attachment_filenames: list[str] = Field(default_factory=list)
    status: Optional[str] = None
    target_meeting_date: Optional[date] = None


class OrdinanceTrackingUpdate(BaseModel):
    ordinance_number: Optional[str] = None
    introduction_date: Optional[date] = None
    introduction_meeting: Optional[str] = None
    pub_intro_date: Optional[date] = None
    pub_intro_newspaper: Optional[str] = None
    bulletin_posted_date: Optional[date] = None
    hearing_date: Optional[date] = None
    hearing_amended: Optional[bool] = None
    hearing_notes: Optional[str] = None
    adoption_date: Optional[date] = None
    adoption_vote: Optional[str] = None
    adoption_failed: Optional[bool] = None
    pub_final_date: Optional[date] = None
    pub_final_newspaper: Optional[str] = None
    effective_date: Optional[date] = None
    is_emergency: Optional[bool] = None
    website_posted_date: Optional[date] = None
    website_url: Optional[str] = None
    clerk_notes: Optional[str] = None


class RevertRequest(BaseModel):
    field: str
