"""Recurrence rule validation and instance generation.

Everything here is pure: no database, no cache, no clock. Callers pass
``today`` explicitly so the same input always produces the same output.
"""

import itertools
from datetime import date, timedelta
from typing import Iterator, List, Optional

from dateutil.rrule import WEEKLY, rrule

from app.core.config import settings
from app.core.exceptions import ActivityValidationError, RecurrenceValidationError
from app.core.logger import logger
from app.schemas.activities.activity import ActivityInstanceDraft, ActivityTemplate
from app.schemas.activities.recurrence import RecurrenceRule

RECURRENCE_TYPES = ("weekly", "daily", "monthly")


def to_rrule_weekday(day: int) -> int:
    """Map a Sunday=0 weekday index onto dateutil's Monday=0 numbering."""
    return (day - 1) % 7


def horizon_end(rule: RecurrenceRule, horizon_days: Optional[int] = None) -> date:
    """Last day the generator may emit for ``rule``."""
    if rule.end is not None:
        return rule.end
    if horizon_days is None:
        horizon_days = settings.RECURRENCE_HORIZON_DAYS
    try:
        return rule.start + timedelta(days=horizon_days)
    except OverflowError:
        raise RecurrenceValidationError(
            "recurrence_start", "Start date is too far in the future"
        ) from None


def validate_recurrence_rule(
    rule: RecurrenceRule, today: date, horizon_days: Optional[int] = None
) -> RecurrenceRule:
    if rule.type not in RECURRENCE_TYPES:
        raise RecurrenceValidationError("recurrence_type", f"Unknown recurrence type '{rule.type}'")

    if rule.type == "weekly" and not rule.days:
        raise RecurrenceValidationError("recurrence_days", "Select at least one day of the week")
    for day in rule.days:
        if not 0 <= day <= 6:
            raise RecurrenceValidationError("recurrence_days", f"Invalid weekday {day}, expected 0-6")

    if rule.start is None:
        raise RecurrenceValidationError("recurrence_start", "Start date is required")
    if rule.start < today:
        raise RecurrenceValidationError("recurrence_start", "Start date cannot be in the past")

    if rule.end is not None and rule.end < rule.start:
        raise RecurrenceValidationError("recurrence_end", "End date must be on or after the start date")

    # the generation window has to fit in the calendar
    horizon_end(rule, horizon_days)
    return rule


def validate_template(template: ActivityTemplate) -> ActivityTemplate:
    """Cross-field checks the field types alone cannot express."""
    if template.age_min > template.age_max:
        raise ActivityValidationError("age_max", "Maximum age must be greater than minimum age")
    if not template.contact_phone and not template.contact_email:
        raise ActivityValidationError("contact_phone", "Provide at least one contact method")
    if not template.is_free and not template.price:
        raise ActivityValidationError("price", "Price is required for paid activities")
    return template


def _weekly_dates(rule: RecurrenceRule, last_day: date) -> Iterator[date]:
    occurrences = rrule(
        WEEKLY,
        dtstart=rule.start,
        until=last_day,
        byweekday=sorted({to_rrule_weekday(day) for day in rule.days}),
    )
    for occurrence in occurrences:
        yield occurrence.date()


def generate_instances(
    template: ActivityTemplate,
    rule: RecurrenceRule,
    horizon_days: Optional[int] = None,
    max_instances: Optional[int] = None,
) -> List[ActivityInstanceDraft]:
    """Expand ``rule`` into dated copies of ``template``, ascending by date.

    The range runs from ``rule.start`` to ``rule.end`` inclusive, or to
    ``start + horizon_days`` when the rule has no end. At most
    ``max_instances`` drafts are returned no matter how long the range is.

    Only weekly rules are expanded. Daily and monthly rules pass validation
    but yield no drafts until their expansion semantics are agreed on.
    """
    if horizon_days is None:
        horizon_days = settings.RECURRENCE_HORIZON_DAYS
    if max_instances is None:
        max_instances = settings.RECURRENCE_MAX_INSTANCES

    if rule.type != "weekly":
        logger.warning(f"Recurrence type '{rule.type}' has no expansion, no instances generated")
        return []

    last_day = horizon_end(rule, horizon_days)
    values = template.model_dump(include=set(ActivityTemplate.model_fields))

    # set a limit to prevent too many activities from one submission
    dates = itertools.islice(_weekly_dates(rule, last_day), 0, max_instances)
    return [ActivityInstanceDraft(**values, date=day) for day in dates]
