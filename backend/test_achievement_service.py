# test_achievement_service.py - Gamification rules and unlock ledger

import asyncio
from datetime import datetime, timedelta, timezone

from conftest import USER_ID, OTHER_USER_ID, FakeDb, seed_catalog
from services.achievement_service import (
    ECO_WARRIOR,
    FIRST_EXPENSE,
    WEEK_STREAK,
    AchievementService,
    evaluate,
    window_start,
)

UTC = timezone.utc


def daily_expenses(first_day: datetime, days: int, **extra) -> list[dict]:
    return [
        {"user_id": USER_ID, "amount": 5, "created_at": (first_day + timedelta(days=i)).isoformat(), **extra}
        for i in range(days)
    ]


def test_window_starts_at_midnight_six_days_back():
    now = datetime(2024, 5, 7, 18, 45, tzinfo=UTC)
    assert window_start(now) == datetime(2024, 5, 1, tzinfo=UTC)


def test_naive_now_is_localized():
    assert window_start(datetime(2024, 5, 7, 9, 0)).tzinfo is not None


def test_evaluate_first_expense_only():
    assert evaluate(True, [], datetime(2024, 5, 7, tzinfo=UTC)) == {FIRST_EXPENSE}
    assert evaluate(False, [], datetime(2024, 5, 7, tzinfo=UTC)) == set()


def test_evaluate_streak_needs_seven_distinct_days():
    now = datetime(2024, 5, 7, 20, 0, tzinfo=UTC)
    six_days = daily_expenses(datetime(2024, 5, 2, 12, tzinfo=UTC), 6)
    assert WEEK_STREAK not in evaluate(True, six_days, now)

    seven_days = daily_expenses(datetime(2024, 5, 1, 12, tzinfo=UTC), 7)
    assert WEEK_STREAK in evaluate(True, seven_days, now)


def test_evaluate_ignores_rows_before_window():
    now = datetime(2024, 5, 7, 20, 0, tzinfo=UTC)
    rows = daily_expenses(datetime(2024, 4, 30, 23, tzinfo=UTC), 7, transport_type="bus")
    # The first row falls the evening before the window opens
    assert WEEK_STREAK not in evaluate(True, rows, now)
    assert ECO_WARRIOR in evaluate(True, rows, now)


def test_evaluate_eco_warrior_counts_tagged_trips():
    now = datetime(2024, 5, 7, 20, 0, tzinfo=UTC)
    rows = daily_expenses(datetime(2024, 5, 5, 8, tzinfo=UTC), 2, transport_type="bus")
    rows += daily_expenses(datetime(2024, 5, 6, 9, tzinfo=UTC), 1, transport_type=None)
    assert ECO_WARRIOR not in evaluate(True, rows, now)

    rows += daily_expenses(datetime(2024, 5, 7, 9, tzinfo=UTC), 1, transport_type="train")
    assert ECO_WARRIOR in evaluate(True, rows, now)


# ---------------------------------------------------------------------------
# ledger side effects

def test_week_streak_unlocks_once():
    db = FakeDb()
    seed_catalog(db)
    db.seed("expenses", *daily_expenses(datetime(2024, 5, 1, 12, tzinfo=UTC), 7))

    unlocked = asyncio.run(AchievementService.check(db, USER_ID, datetime(2024, 5, 7, 20, tzinfo=UTC)))
    assert [u["slug"] for u in unlocked] == [FIRST_EXPENSE, WEEK_STREAK]
    assert len(db.tables["user_achievements"]) == 2

    again = asyncio.run(AchievementService.check(db, USER_ID, datetime(2024, 5, 8, 9, tzinfo=UTC)))
    assert again == []
    assert len(db.tables["user_achievements"]) == 2


def test_repeated_check_without_new_data_inserts_nothing():
    db = FakeDb()
    seed_catalog(db)
    db.seed("expenses", *daily_expenses(datetime(2024, 5, 5, 12, tzinfo=UTC), 3, transport_type="bus"))
    now = datetime(2024, 5, 7, 20, tzinfo=UTC)

    first = asyncio.run(AchievementService.check(db, USER_ID, now))
    assert {u["slug"] for u in first} == {FIRST_EXPENSE, ECO_WARRIOR}
    assert asyncio.run(AchievementService.check(db, USER_ID, now)) == []
    assert len(db.tables["user_achievements"]) == 2


def test_other_users_expenses_do_not_count():
    db = FakeDb()
    seed_catalog(db)
    db.seed("expenses", {"user_id": OTHER_USER_ID, "amount": 3, "created_at": "2024-05-07T10:00:00+00:00"})
    assert asyncio.run(AchievementService.check(db, USER_ID, datetime(2024, 5, 7, 20, tzinfo=UTC))) == []


class RacingDb(FakeDb):
    """Ledger reads never see the row a concurrent request already inserted."""

    async def select(self, table, *args, **kwargs):
        if table == "user_achievements":
            return []
        return await super().select(table, *args, **kwargs)


def test_concurrent_unlock_is_ignored():
    db = RacingDb()
    seed_catalog(db)
    db.seed("expenses", {"user_id": USER_ID, "amount": 3, "created_at": "2024-05-07T10:00:00+00:00"})
    now = datetime(2024, 5, 7, 20, tzinfo=UTC)

    assert len(asyncio.run(AchievementService.check(db, USER_ID, now))) == 1
    assert asyncio.run(AchievementService.check(db, USER_ID, now)) == []
    assert len(db.tables["user_achievements"]) == 1


def test_missing_catalog_entry_is_skipped():
    db = FakeDb()
    db.seed("expenses", {"user_id": USER_ID, "amount": 3, "created_at": "2024-05-07T10:00:00+00:00"})
    assert asyncio.run(AchievementService.check(db, USER_ID, datetime(2024, 5, 7, 20, tzinfo=UTC))) == []


def test_list_with_progress():
    db = FakeDb()
    seed_catalog(db)
    db.seed("expenses", *daily_expenses(datetime(2024, 5, 5, 12, tzinfo=UTC), 3))
    now = datetime(2024, 5, 7, 20, tzinfo=UTC)
    asyncio.run(AchievementService.check(db, USER_ID, now))

    result = asyncio.run(AchievementService.list_with_progress(db, USER_ID, now))
    by_slug = {a["slug"]: a for a in result["achievements"]}

    assert [a["slug"] for a in result["achievements"]] == [WEEK_STREAK, ECO_WARRIOR, FIRST_EXPENSE]
    assert by_slug[FIRST_EXPENSE]["unlocked"] is True
    assert by_slug[FIRST_EXPENSE]["unlockedAt"] is not None
    assert by_slug[FIRST_EXPENSE]["progress"] == 100
    assert by_slug[WEEK_STREAK]["unlocked"] is False
    assert by_slug[WEEK_STREAK]["progress"] == 43
    assert by_slug[ECO_WARRIOR]["progress"] == 0
    assert result["stats"] == {
        "total": 3,
        "unlocked": 1,
        "points": {"total": 60, "unlocked": 10, "percentage": 16.67},
    }
