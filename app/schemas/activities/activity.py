from pydantic import BaseModel, Field
from datetime import datetime
from datetime import date as dt_date
from typing import Optional, List
from datetime import time as dt_time
from app.schemas.activities.recurrence import RecurrenceRule, RecurrenceType


class ActivityTemplate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    activity_type: str
    time: dt_time
    duration: int = Field(..., gt=0, description="Duration in minutes")
    location: str = Field(..., min_length=1)
    city: str
    address: Optional[str] = None
    max_participants: int = Field(..., ge=1)
    price: Optional[float] = Field(0, ge=0)
    is_free: bool = True
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    website: Optional[str] = None
    age_min: int = Field(0, ge=0)
    age_max: int = Field(120, le=120)
    difficulty_level: Optional[str] = "beginner"
    tags: List[str] = []


class ActivityInstanceDraft(ActivityTemplate):
    """A dated copy of a template, not yet linked to its parent"""
    date: dt_date


class ActivityCreate(ActivityTemplate):
    date: dt_date
    images: List[str] = Field(default_factory=list, description="Image URLs, first one is primary")
    recurrence: Optional[RecurrenceRule] = None

    def template(self) -> ActivityTemplate:
        return ActivityTemplate.model_validate(
            self.model_dump(include=set(ActivityTemplate.model_fields))
        )


class ActivityUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    activity_type: Optional[str] = None
    date: Optional[dt_date] = None
    time: Optional[dt_time] = None
    duration: Optional[int] = Field(None, gt=0)
    location: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = None
    address: Optional[str] = None
    max_participants: Optional[int] = Field(None, ge=1)
    price: Optional[float] = Field(None, ge=0)
    is_free: Optional[bool] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    website: Optional[str] = None
    age_min: Optional[int] = Field(None, ge=0)
    age_max: Optional[int] = Field(None, le=120)
    difficulty_level: Optional[str] = None
    tags: Optional[List[str]] = None

    # Stored on the parent only; existing instances are never regenerated
    recurrence_type: Optional[RecurrenceType] = None
    recurrence_days: Optional[List[int]] = None
    recurrence_end: Optional[dt_date] = None


class ActivityImageResponse(BaseModel):
    id: int
    image_url: str
    image_order: int
    is_primary: bool

    class Config:
        from_attributes = True


class ActivityResponse(ActivityTemplate):
    id: int
    owner_id: int
    date: dt_date
    is_recurring: bool
    recurrence_type: Optional[str] = None
    recurrence_days: Optional[List[int]] = None
    recurrence_start: Optional[dt_date] = None
    recurrence_end: Optional[dt_date] = None
    parent_activity_id: Optional[int] = None
    created_at: datetime
    images: List[ActivityImageResponse] = []

    class Config:
        from_attributes = True


class SeriesResponse(BaseModel):
    activity_id: int
    is_recurring: bool
    instance_ids: List[int] = []
    instance_count: int = 0
    media_failures: List[int] = []
