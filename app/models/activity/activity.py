# app/models/activity/activity.py

from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Date, Time, Text,
    Boolean, Float, JSON, CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base

# Scalar fields shared verbatim by a parent and every instance generated from it
TEMPLATE_FIELDS = (
    "title",
    "description",
    "activity_type",
    "time",
    "duration",
    "location",
    "city",
    "address",
    "max_participants",
    "price",
    "is_free",
    "contact_phone",
    "contact_email",
    "website",
    "age_min",
    "age_max",
    "difficulty_level",
    "tags",
)

RECURRENCE_FIELDS = (
    "recurrence_type",
    "recurrence_days",
    "recurrence_start",
    "recurrence_end",
)


class Activity(Base):
    __tablename__ = "activities"
    __table_args__ = (
        CheckConstraint(
            "NOT (is_recurring AND parent_activity_id IS NOT NULL)",
            name="ck_activity_parent_or_instance",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    activity_type = Column(String, nullable=False)
    location = Column(String, nullable=False)
    city = Column(String, nullable=False)
    address = Column(String, nullable=True)
    max_participants = Column(Integer, nullable=False)
    price = Column(Float, default=0)
    is_free = Column(Boolean, default=True)
    contact_phone = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    website = Column(String, nullable=True)
    age_min = Column(Integer, default=0)
    age_max = Column(Integer, default=120)
    difficulty_level = Column(String, nullable=True)
    tags = Column(JSON, default=list)

    date = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes

    # Only meaningful on a recurrence parent
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_type = Column(String, nullable=True)
    recurrence_days = Column(JSON, nullable=True)  # 0..6, Sunday=0
    recurrence_start = Column(Date, nullable=True)
    recurrence_end = Column(Date, nullable=True)

    parent_activity_id = Column(
        Integer,
        ForeignKey("activities.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", back_populates="activities")
    images = relationship(
        "ActivityImage",
        back_populates="activity",
        cascade="all, delete-orphan",
        order_by="ActivityImage.image_order",
        passive_deletes=True,
    )

    def template_values(self) -> dict:
        """Return the template fields of this activity as a plain dict"""
        return {field: getattr(self, field) for field in TEMPLATE_FIELDS}

    def to_dict(self):
        """Convert Activity instance to dictionary for caching"""
        data = self.template_values()
        data.update({
            "id": self.id,
            "owner_id": self.owner_id,
            "date": self.date.isoformat() if self.date else None,
            "time": self.time.strftime("%H:%M:%S") if self.time else None,
            "is_recurring": self.is_recurring,
            "recurrence_type": self.recurrence_type,
            "recurrence_days": self.recurrence_days,
            "recurrence_start": self.recurrence_start.isoformat() if self.recurrence_start else None,
            "recurrence_end": self.recurrence_end.isoformat() if self.recurrence_end else None,
            "parent_activity_id": self.parent_activity_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        })
        return data
