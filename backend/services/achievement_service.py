"""
achievement_service.py - Gamification rules and the unlock ledger
Three fixed rules are evaluated against the user's expenses. Newly satisfied
rules get one user_achievements row each; the unique (user, achievement)
constraint makes a concurrent double unlock fail harmlessly.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel

from errors import ConflictError
from services.report_service import ReportService, app_zone, start_of_day, to_local

logger = logging.getLogger(__name__)

FIRST_EXPENSE = "first-expense"
WEEK_STREAK = "week-streak"
ECO_WARRIOR = "eco-warrior"
RULE_ORDER = (FIRST_EXPENSE, WEEK_STREAK, ECO_WARRIOR)

STREAK_DAYS = 7
ECO_MIN_TRIPS = 3


class AchievementStatus(BaseModel):
    id: int | str
    slug: str
    title: Optional[str] = None
    description: Optional[str] = None
    points: int = 0
    unlocked: bool = False
    unlockedAt: Optional[str] = None
    progress: int = 0


def window_start(now: datetime) -> datetime:
    """Midnight six days ago: the trailing week including today."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=app_zone())
    return start_of_day(now - timedelta(days=STREAK_DAYS - 1))


def distinct_days(rows: list[dict], since: datetime) -> int:
    days = set()
    for row in rows:
        ts = to_local(row.get("created_at"), since.tzinfo)
        if ts is not None and ts >= since:
            days.add(ts.date())
    return len(days)


def tagged_trips(rows: list[dict], since: datetime) -> int:
    count = 0
    for row in rows:
        ts = to_local(row.get("created_at"), since.tzinfo)
        if row.get("transport_type") is not None and ts is not None and ts >= since:
            count += 1
    return count


def evaluate(has_any_expense: bool, recent_rows: list[dict], now: datetime) -> set[str]:
    """Slugs whose rule is currently satisfied (ledger state is not considered)."""
    since = window_start(now)
    satisfied = set()
    if has_any_expense:
        satisfied.add(FIRST_EXPENSE)
    if distinct_days(recent_rows, since) >= STREAK_DAYS:
        satisfied.add(WEEK_STREAK)
    if tagged_trips(recent_rows, since) >= ECO_MIN_TRIPS:
        satisfied.add(ECO_WARRIOR)
    return satisfied


def progress_for(slug: str, unlocked: bool, has_any_expense: bool, streak_days: int) -> int:
    if slug == FIRST_EXPENSE:
        return 100 if has_any_expense else 0
    if slug == WEEK_STREAK:
        return round(min(STREAK_DAYS, streak_days) / STREAK_DAYS * 100)
    return 100 if unlocked else 0


class AchievementService:
    @staticmethod
    async def _expense_facts(db, user_id: str, now: datetime) -> tuple[bool, list[dict]]:
        any_rows = await db.select("expenses", columns="id", filters={"user_id": user_id}, limit=1)
        recent = await db.select(
            "expenses",
            columns="created_at, transport_type",
            filters={"user_id": user_id},
            where=[("created_at", "gte", window_start(now))],
        )
        return bool(any_rows), recent

    @staticmethod
    async def ensure_unlocked(db, user_id: str, slug: str, now: datetime) -> dict | None:
        """Insert the ledger row for ``slug`` unless it already exists."""
        achievement = await db.select_one("achievements", columns="id, slug", filters={"slug": slug})
        if not achievement:
            logger.warning("Achievement %s missing from catalog", slug)
            return None

        existing = await db.select(
            "user_achievements",
            columns="achievement_id",
            filters={"user_id": user_id, "achievement_id": achievement["id"]},
            limit=1,
        )
        if existing:
            return None

        try:
            inserted = await db.insert_one(
                "user_achievements",
                {"user_id": user_id, "achievement_id": achievement["id"], "unlocked_at": now},
                columns="achievement_id",
            )
        except ConflictError:
            logger.warning("Achievement %s already unlocked for %s by a concurrent check", slug, user_id)
            return None
        return {"slug": slug, "achievementId": inserted.get("achievement_id", achievement["id"])}

    @staticmethod
    async def check(db, user_id: str, now: datetime | None = None) -> list[dict]:
        """Run every rule and unlock what is newly satisfied."""
        now = now or datetime.now(app_zone())
        has_any, recent = await AchievementService._expense_facts(db, user_id, now)
        satisfied = evaluate(has_any, recent, now)

        newly_unlocked = []
        for slug in RULE_ORDER:
            if slug in satisfied:
                result = await AchievementService.ensure_unlocked(db, user_id, slug, now)
                if result:
                    newly_unlocked.append(result)
        return newly_unlocked

    @staticmethod
    async def list_with_progress(db, user_id: str, now: datetime | None = None) -> dict:
        now = now or datetime.now(app_zone())
        achievements = await db.select(
            "achievements",
            columns="id, slug, title, description, points",
            order=[("points", False)],
        )
        ledger = await db.select(
            "user_achievements",
            columns="achievement_id, unlocked_at",
            filters={"user_id": user_id},
        )
        unlocked_at = {row["achievement_id"]: row.get("unlocked_at") for row in ledger}

        has_any, recent = await AchievementService._expense_facts(db, user_id, now)
        streak = distinct_days(recent, window_start(now))

        statuses = []
        for a in achievements:
            unlocked = a["id"] in unlocked_at
            statuses.append(AchievementStatus(
                id=a["id"],
                slug=a["slug"],
                title=a.get("title"),
                description=a.get("description"),
                points=a.get("points") or 0,
                unlocked=unlocked,
                unlockedAt=unlocked_at.get(a["id"]),
                progress=progress_for(a["slug"], unlocked, has_any, streak),
            ))

        return {
            "achievements": [s.model_dump() for s in statuses],
            "stats": ReportService.points_summary(achievements, set(unlocked_at)),
        }
