from datetime import date, timedelta

import pytest
from dateutil.rrule import MO, SA, SU

from app.core.exceptions import ActivityValidationError, RecurrenceValidationError
from app.schemas.activities.activity import ActivityCreate
from app.schemas.activities.recurrence import RecurrenceRule
from app.services.activities.recurrence import (
    generate_instances,
    horizon_end,
    to_rrule_weekday,
    validate_recurrence_rule,
    validate_template,
)

MONDAY = date(2024, 1, 1)


@pytest.fixture
def template(make_payload):
    return ActivityCreate(**make_payload()).template()


def test_sunday_based_days_map_onto_rrule_weekdays():
    assert to_rrule_weekday(0) == SU.weekday
    assert to_rrule_weekday(1) == MO.weekday
    assert to_rrule_weekday(6) == SA.weekday


def test_weekly_rule_with_end_date(template):
    rule = RecurrenceRule(type="weekly", days=[1, 3, 5], start=MONDAY, end=date(2024, 1, 15))

    drafts = generate_instances(template, rule)

    assert [d.date for d in drafts] == [
        date(2024, 1, 1),
        date(2024, 1, 3),
        date(2024, 1, 5),
        date(2024, 1, 8),
        date(2024, 1, 10),
        date(2024, 1, 12),
        date(2024, 1, 15),
    ]


def test_every_day_without_end_stops_at_cap(template):
    rule = RecurrenceRule(type="weekly", days=[0, 1, 2, 3, 4, 5, 6], start=MONDAY)

    drafts = generate_instances(template, rule)

    assert len(drafts) == 100
    assert drafts[0].date == MONDAY
    assert drafts[-1].date == date(2024, 4, 9)


def test_horizon_binds_before_cap(template):
    rule = RecurrenceRule(type="weekly", days=[6], start=MONDAY)

    drafts = generate_instances(template, rule)

    # 52 Saturdays fit in start + 365 days
    assert len(drafts) == 52
    assert drafts[-1].date <= horizon_end(rule)


def test_horizon_and_cap_are_parameters(template):
    rule = RecurrenceRule(type="weekly", days=[0, 1, 2, 3, 4, 5, 6], start=MONDAY)

    assert len(generate_instances(template, rule, horizon_days=6)) == 7
    assert len(generate_instances(template, rule, max_instances=3)) == 3
    assert horizon_end(rule, horizon_days=10) == date(2024, 1, 11)


def test_explicit_end_overrides_horizon():
    rule = RecurrenceRule(type="weekly", days=[1], start=MONDAY, end=date(2026, 1, 1))
    assert horizon_end(rule, horizon_days=7) == date(2026, 1, 1)


@pytest.mark.parametrize(
    "days,start,end",
    [
        ([1, 3, 5], MONDAY, date(2024, 1, 15)),
        ([0], date(2024, 2, 29), None),
        ([2, 4], date(2024, 3, 10), date(2025, 6, 1)),
        ([0, 6], date(2024, 12, 25), None),
        ([3], date(2024, 1, 4), date(2024, 1, 9)),
    ],
)
def test_generated_dates_respect_rule(template, days, start, end):
    rule = RecurrenceRule(type="weekly", days=days, start=start, end=end)
    last_day = horizon_end(rule)

    drafts = generate_instances(template, rule)

    assert len(drafts) <= 100
    dates = [d.date for d in drafts]
    assert dates == sorted(dates)
    assert len(set(dates)) == len(dates)
    for day in dates:
        assert day.isoweekday() % 7 in days
        assert start <= day <= last_day


def test_window_without_matching_weekday_is_empty(template):
    # Thursday 4th to Tuesday 9th has no Wednesday
    rule = RecurrenceRule(type="weekly", days=[3], start=date(2024, 1, 4), end=date(2024, 1, 9))
    assert generate_instances(template, rule) == []


def test_drafts_copy_template_fields(template):
    rule = RecurrenceRule(type="weekly", days=[1], start=MONDAY, end=date(2024, 1, 31))

    drafts = generate_instances(template, rule)

    for draft in drafts:
        copied = draft.model_dump(exclude={"date"})
        assert copied == template.model_dump()
        assert not hasattr(draft, "parent_activity_id")
        assert not hasattr(draft, "recurrence_days")


def test_generation_returns_reusable_list(template):
    rule = RecurrenceRule(type="weekly", days=[1, 2], start=MONDAY, end=date(2024, 1, 31))

    drafts = generate_instances(template, rule)

    assert isinstance(drafts, list)
    assert [d.date for d in drafts] == [d.date for d in drafts]


@pytest.mark.parametrize("rule_type", ["daily", "monthly"])
def test_unexpanded_types_yield_nothing(template, rule_type):
    rule = RecurrenceRule(type=rule_type, start=MONDAY, end=date(2024, 3, 1))
    assert generate_instances(template, rule) == []


def test_generation_window_past_the_calendar_is_a_validation_error(template):
    rule = RecurrenceRule(type="weekly", days=[0, 1, 2, 3, 4, 5, 6], start=date(9999, 12, 25))
    with pytest.raises(RecurrenceValidationError):
        generate_instances(template, rule)


class TestValidateRecurrenceRule:
    def test_accepts_valid_weekly_rule(self):
        rule = RecurrenceRule(type="weekly", days=[1, 3], start=MONDAY, end=MONDAY)
        assert validate_recurrence_rule(rule, today=MONDAY) is rule

    def test_empty_days_rejected_for_weekly(self):
        rule = RecurrenceRule(type="weekly", days=[], start=MONDAY)
        with pytest.raises(RecurrenceValidationError) as exc:
            validate_recurrence_rule(rule, today=MONDAY)
        assert exc.value.field == "recurrence_days"

    @pytest.mark.parametrize("day", [-1, 7, 12])
    def test_out_of_range_weekday_rejected(self, day):
        rule = RecurrenceRule(type="weekly", days=[1, day], start=MONDAY)
        with pytest.raises(RecurrenceValidationError) as exc:
            validate_recurrence_rule(rule, today=MONDAY)
        assert exc.value.field == "recurrence_days"

    def test_missing_start_rejected(self):
        rule = RecurrenceRule(type="weekly", days=[1])
        with pytest.raises(RecurrenceValidationError) as exc:
            validate_recurrence_rule(rule, today=MONDAY)
        assert exc.value.field == "recurrence_start"

    def test_start_in_the_past_rejected(self):
        rule = RecurrenceRule(type="weekly", days=[1], start=MONDAY)
        with pytest.raises(RecurrenceValidationError) as exc:
            validate_recurrence_rule(rule, today=MONDAY + timedelta(days=1))
        assert exc.value.field == "recurrence_start"

    def test_end_before_start_rejected(self):
        rule = RecurrenceRule(type="weekly", days=[1], start=MONDAY, end=MONDAY - timedelta(days=1))
        with pytest.raises(RecurrenceValidationError) as exc:
            validate_recurrence_rule(rule, today=MONDAY)
        assert exc.value.field == "recurrence_end"

    @pytest.mark.parametrize("rule_type", ["daily", "monthly"])
    def test_days_optional_for_other_types(self, rule_type):
        rule = RecurrenceRule(type=rule_type, start=MONDAY)
        assert validate_recurrence_rule(rule, today=MONDAY) is rule

    def test_window_past_the_calendar_rejected(self):
        rule = RecurrenceRule(type="weekly", days=[0, 1, 2, 3, 4, 5, 6], start=date(9999, 12, 25))
        with pytest.raises(RecurrenceValidationError) as exc:
            validate_recurrence_rule(rule, today=MONDAY)
        assert exc.value.field == "recurrence_start"

    def test_short_horizon_keeps_late_start_valid(self):
        rule = RecurrenceRule(type="weekly", days=[1], start=date(9999, 12, 25))
        assert validate_recurrence_rule(rule, today=MONDAY, horizon_days=3) is rule

    def test_error_is_a_validation_error(self):
        rule = RecurrenceRule(type="weekly", days=[], start=MONDAY)
        with pytest.raises(ActivityValidationError) as exc:
            validate_recurrence_rule(rule, today=MONDAY)
        assert exc.value.to_dict() == {
            "field": "recurrence_days",
            "message": "Select at least one day of the week",
        }


class TestValidateTemplate:
    def test_age_range_must_be_ordered(self, make_payload):
        template = ActivityCreate(**make_payload(age_min=80, age_max=60)).template()
        with pytest.raises(ActivityValidationError) as exc:
            validate_template(template)
        assert exc.value.field == "age_max"

    def test_needs_a_contact_method(self, make_payload):
        template = ActivityCreate(**make_payload(contact_phone=None, contact_email=None)).template()
        with pytest.raises(ActivityValidationError) as exc:
            validate_template(template)
        assert exc.value.field == "contact_phone"

    def test_paid_activity_needs_price(self, make_payload):
        template = ActivityCreate(**make_payload(is_free=False, price=0)).template()
        with pytest.raises(ActivityValidationError) as exc:
            validate_template(template)
        assert exc.value.field == "price"

    def test_email_alone_is_enough(self, make_payload):
        template = ActivityCreate(**make_payload(contact_phone=None, contact_email="a@b.es")).template()
        assert validate_template(template) is template
