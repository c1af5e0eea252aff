from pydantic import BaseModel, Field
from datetime import date as dt_date
from typing import List, Literal, Optional

RecurrenceType = Literal["weekly", "daily", "monthly"]


class RecurrenceRule(BaseModel):
    """How a parent activity repeats.

    Only the shape is checked here; the semantic checks (weekly needs days,
    start not in the past, end after start) live in
    app.services.activities.recurrence.validate_recurrence_rule so they can
    report a single field-scoped error before anything is written.
    """
    type: RecurrenceType = "weekly"
    days: List[int] = Field(default_factory=list, description="Weekday indices, Sunday=0")
    start: Optional[dt_date] = None
    end: Optional[dt_date] = None


class RecurrenceSeries(BaseModel):
    parent_id: int
    instance_ids: List[int] = []
    media_failures: List[int] = []

    @property
    def instance_count(self) -> int:
        return len(self.instance_ids)

    @property
    def media_complete(self) -> bool:
        """True when every instance received its copy of the parent images."""
        return not self.media_failures
