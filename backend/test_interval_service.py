# test_interval_service.py - Subscription cadence arithmetic

from datetime import datetime, timezone

import pytest

from services.interval_service import next_occurrence, parse_timestamp, resolve_next_charge

UTC = timezone.utc


def test_month_step_clamps_to_leap_february():
    assert next_occurrence(datetime(2024, 1, 31, tzinfo=UTC), 1, "month") == datetime(2024, 2, 29, tzinfo=UTC)


def test_month_step_clamps_to_common_february():
    assert next_occurrence(datetime(2025, 1, 31, tzinfo=UTC), 1, "month") == datetime(2025, 2, 28, tzinfo=UTC)


def test_year_step_from_leap_day():
    assert next_occurrence(datetime(2024, 2, 29, tzinfo=UTC), 1, "year") == datetime(2025, 2, 28, tzinfo=UTC)


def test_week_is_seven_days():
    assert next_occurrence(datetime(2024, 3, 1, tzinfo=UTC), 2, "week") == datetime(2024, 3, 15, tzinfo=UTC)


def test_time_of_day_and_zone_preserved():
    base = datetime(2024, 5, 10, 13, 45, 7, tzinfo=UTC)
    result = next_occurrence(base, 3, "day")
    assert (result.hour, result.minute, result.second) == (13, 45, 7)
    assert result.tzinfo is UTC


@pytest.mark.parametrize("unit", ["day", "week", "year"])
@pytest.mark.parametrize("n,k", [(1, 3), (2, 4), (5, 2)])
def test_repeated_steps_equal_one_multiplied_step(unit, n, k):
    base = datetime(2023, 6, 15, 8, 30, tzinfo=UTC)
    stepped = base
    for _ in range(k):
        stepped = next_occurrence(stepped, n, unit)
    assert stepped == next_occurrence(base, n * k, unit)


def test_repeated_month_steps_drift_after_clamping():
    base = datetime(2024, 1, 31, tzinfo=UTC)
    twice = next_occurrence(next_occurrence(base, 1, "month"), 1, "month")
    assert twice == datetime(2024, 3, 29, tzinfo=UTC)
    assert next_occurrence(base, 2, "month") == datetime(2024, 3, 31, tzinfo=UTC)


def test_unknown_unit_rejected():
    with pytest.raises(ValueError):
        next_occurrence(datetime(2024, 1, 1, tzinfo=UTC), 1, "fortnight")


# ---------------------------------------------------------------------------
# resolve_next_charge

def test_override_wins_over_cadence_change():
    override = datetime(2030, 1, 1, tzinfo=UTC)
    assert resolve_next_charge(None, every_n=3, unit="day", next_charge_at=override) == override


def test_no_cadence_change_means_no_write():
    current = {"start_date": "2024-01-01T00:00:00+00:00", "every_n": 1, "unit": "month"}
    assert resolve_next_charge(current) is None


def test_changed_unit_merges_stored_start_and_count():
    current = {"start_date": "2024-01-31T09:00:00Z", "every_n": 2, "unit": "month"}
    result = resolve_next_charge(current, unit="week")
    assert result == datetime(2024, 2, 14, 9, 0, tzinfo=UTC)


def test_changed_start_uses_stored_cadence():
    current = {"start_date": "2020-01-01T00:00:00Z", "every_n": 1, "unit": "month"}
    result = resolve_next_charge(current, start_date=datetime(2024, 1, 31, tzinfo=UTC))
    assert result == datetime(2024, 2, 29, tzinfo=UTC)


def test_parse_timestamp():
    assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=UTC)
    assert parse_timestamp(None) is None
    assert parse_timestamp("not a date") is None
