"""
interval_service.py - Subscription cadence arithmetic
Advances a start instant by (every_n, unit) to find the next charge.
Month and year steps clamp to the last valid day of the target month.
"""

from datetime import datetime, timedelta

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

INTERVAL_UNITS = ("day", "week", "month", "year")


def next_occurrence(base: datetime, every_n: int, unit: str) -> datetime:
    """
    Return ``base`` advanced by ``every_n`` units.

    Input is assumed validated (every_n > 0, unit in INTERVAL_UNITS).
    Jan 31 + 1 month is Feb 28/29, not early March.
    """
    if unit == "day":
        return base + timedelta(days=every_n)
    if unit == "week":
        return base + timedelta(days=every_n * 7)
    if unit == "month":
        return base + relativedelta(months=every_n)
    if unit == "year":
        return base + relativedelta(years=every_n)
    raise ValueError(f"Unsupported interval unit: {unit}")


def resolve_next_charge(
    current: dict | None,
    start_date: datetime | None = None,
    every_n: int | None = None,
    unit: str | None = None,
    next_charge_at: datetime | None = None,
) -> datetime | None:
    """
    Decide next_charge_at for a subscription update.

    An explicit ``next_charge_at`` always wins. Otherwise, if any cadence
    field changed, recompute from the changed values merged over the stored
    row ``current``. Returns None when nothing needs to be written.
    """
    if next_charge_at is not None:
        return next_charge_at
    if start_date is None and every_n is None and unit is None:
        return None

    current = current or {}
    base = start_date if start_date is not None else parse_timestamp(current.get("start_date"))
    if base is None:
        return None
    return next_occurrence(
        base,
        every_n if every_n is not None else int(current.get("every_n") or 1),
        unit if unit is not None else current.get("unit", "month"),
    )


def parse_timestamp(value) -> datetime | None:
    """Parse a PostgREST timestamp (ISO 8601, possibly with 'Z')."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        return isoparse(str(value))
    except ValueError:
        return None
