from datetime import datetime

from fastapi import APIRouter, Depends, Query
from typing import Optional

from auth import UserScope, get_user_scope
from services.report_service import ReportService, app_zone
from supabase_rest import SupabaseRest, get_db

router = APIRouter(prefix="/api/v1/carbon", tags=["Carbon"])


@router.get("/summary")
async def carbon_summary(month: Optional[int] = Query(None, ge=1, le=12),
                         year: Optional[int] = Query(None, ge=2000, le=9999),
                         scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    """Carbon footprint of one month's expenses, grouped by category."""
    now = datetime.now(app_zone())
    month = month or now.month
    year = year or now.year
    start, end = ReportService.month_range(month, year)

    rows = await db.select(
        "expenses",
        columns="category_id, carbon_kg, category:categories(name)",
        filters={"user_id": scope.user_id},
        where=[("created_at", "gte", start), ("created_at", "lte", end)],
    )
    return {"success": True, "summary": ReportService.carbon_summary(rows, month, year)}
