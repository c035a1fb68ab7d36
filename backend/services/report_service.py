"""
report_service.py - Grouped spending reports
Folds already-filtered expense rows into grouped sums: carbon by category,
transport spending by day/hour/type, merchant frequency and achievement
points. Amount coercion never raises; anything non-numeric counts as zero.
"""

import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Hashable, Iterable
from zoneinfo import ZoneInfo

from config import APP_TIMEZONE
from services.interval_service import parse_timestamp

DAY_LABELS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
HEATMAP_PERIODS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD = "30d"
OTHER_TRANSPORT = "other"
UNKNOWN_MERCHANT = "unknown"


def to_number(value) -> float:
    """Coerce a row field to a float; missing or non-numeric is 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def app_zone() -> ZoneInfo:
    return ZoneInfo(APP_TIMEZONE)


def to_local(value, tz: ZoneInfo | None = None) -> datetime | None:
    """Parse a stored timestamp and convert it to the app timezone (naive = UTC)."""
    ts = parse_timestamp(value)
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz or app_zone())


def day_index(ts: datetime) -> int:
    """0=Sunday .. 6=Saturday."""
    return (ts.weekday() + 1) % 7


def start_of_day(ts: datetime) -> datetime:
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass
class Bucket:
    count: int = 0
    amount: float = 0

    def add(self, amount: float):
        self.count += 1
        self.amount += amount


def aggregate(
    records: Iterable[dict],
    key_fn: Callable[[dict], Hashable],
    amount_fn: Callable[[dict], float],
) -> tuple[dict, float]:
    """
    Group records by key_fn and sum amount_fn per group.
    Returns ({key: Bucket}, total). Buckets keep first-seen key order.
    """
    buckets: dict = {}
    total = 0
    for record in records:
        amount = to_number(amount_fn(record))
        buckets.setdefault(key_fn(record), Bucket()).add(amount)
        total += amount
    return buckets, total


class ReportService:
    # ------------------------------------------------------------------
    @staticmethod
    def month_range(month: int, year: int, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
        """First instant and last microsecond of a calendar month in the app zone."""
        tz = tz or app_zone()
        start = datetime(year, month, 1, tzinfo=tz)
        next_month = datetime(year + (month == 12), month % 12 + 1, 1, tzinfo=tz)
        return start, next_month - timedelta(microseconds=1)

    @staticmethod
    def carbon_summary(rows: list[dict], month: int, year: int) -> dict:
        names: dict = {}

        def category_key(row):
            cat_id = int(to_number(row.get("category_id")))
            category = row.get("category") or {}
            names.setdefault(cat_id, category.get("name"))
            return cat_id

        buckets, total_kg = aggregate(rows, category_key, lambda r: r.get("carbon_kg"))
        by_category = [
            {"category_id": cat_id, "category_name": names.get(cat_id), "carbon_kg": b.amount}
            for cat_id, b in buckets.items()
        ]
        by_category.sort(key=lambda x: x["carbon_kg"], reverse=True)
        return {"total_kg": total_kg, "by_category": by_category, "month": month, "year": year}

    # ------------------------------------------------------------------
    @staticmethod
    def heatmap_start(period: str, now: datetime | None = None) -> datetime:
        now = now or datetime.now(app_zone())
        days = HEATMAP_PERIODS.get(period, HEATMAP_PERIODS[DEFAULT_PERIOD])
        return start_of_day(now - timedelta(days=days))

    @staticmethod
    def transport_heatmap(rows: list[dict], period: str = DEFAULT_PERIOD, tz: ZoneInfo | None = None) -> dict:
        """
        Bucket transport expenses by local day-of-week, hour and transport type.
        Rows without a parseable created_at only count towards type and totals.
        """
        tz = tz or app_zone()
        by_day = [{"day": label, "count": 0, "amount": 0} for label in DAY_LABELS]
        by_hour = [{"hour": h, "count": 0, "amount": 0} for h in range(24)]
        heatmap = [
            {"day": label, "hours": [{"hour": h, "amount": 0, "count": 0} for h in range(24)]}
            for label in DAY_LABELS
        ]

        for row in rows:
            ts = to_local(row.get("created_at"), tz)
            if ts is None:
                continue
            amount = to_number(row.get("amount"))
            d, h = day_index(ts), ts.hour
            for cell in (by_day[d], by_hour[h], heatmap[d]["hours"][h]):
                cell["count"] += 1
                cell["amount"] += amount

        types, total = aggregate(
            rows, lambda r: r.get("transport_type") or OTHER_TRANSPORT, lambda r: r.get("amount")
        )
        by_type = [{"type": t, "count": b.count, "amount": b.amount} for t, b in types.items()]
        by_type.sort(key=lambda x: x["amount"], reverse=True)

        return {
            "period": period,
            "totals": {"totalAmount": round(total, 2), "totalCount": len(rows)},
            "patterns": {"byDay": by_day, "byHour": by_hour, "byType": by_type},
            "heatmap": heatmap,
        }

    # ------------------------------------------------------------------
    @staticmethod
    def top_merchant(rows: list[dict]) -> str:
        """Most frequent merchant; ties go to the one seen first."""
        counts = Counter((str(r.get("merchant") or "").strip() or UNKNOWN_MERCHANT) for r in rows)
        if not counts:
            return "N/A"
        # Counter preserves insertion order and max() keeps the first maximum
        return max(counts, key=counts.get)

    @staticmethod
    def spending_snapshot(rows: list[dict]) -> dict:
        """Totals used to give the language model context about the user."""
        return {
            "total_amount": sum(to_number(r.get("amount")) for r in rows),
            "total_carbon": sum(to_number(r.get("carbon_kg")) for r in rows),
            "count": len(rows),
            "top_merchant": ReportService.top_merchant(rows),
        }

    @staticmethod
    def points_summary(achievements: list[dict], unlocked_ids: set) -> dict:
        points_total = sum(int(to_number(a.get("points"))) for a in achievements)
        points_unlocked = sum(int(to_number(a.get("points"))) for a in achievements if a.get("id") in unlocked_ids)
        return {
            "total": len(achievements),
            "unlocked": len(unlocked_ids),
            "points": {
                "total": points_total,
                "unlocked": points_unlocked,
                "percentage": round(points_unlocked / points_total * 100, 2) if points_total > 0 else 0,
            },
        }
