from fastapi import APIRouter, Depends, Query
from typing import Literal

from auth import UserScope, get_user_scope
from services.report_service import DEFAULT_PERIOD, ReportService
from supabase_rest import SupabaseRest, get_db

router = APIRouter(prefix="/api/v1/transport", tags=["Transport"])


@router.get("/heatmap")
async def transport_heatmap(period: Literal["7d", "30d", "90d"] = Query(DEFAULT_PERIOD),
                            scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    """When and how the user spends on transport: day/hour matrix plus per-type totals."""
    rows = await db.select(
        "expenses",
        columns="id, amount, created_at, transport_type",
        filters={"user_id": scope.user_id},
        where=[
            ("created_at", "gte", ReportService.heatmap_start(period)),
            ("transport_type", "not.is", None),
        ],
    )
    return {"success": True, "data": ReportService.transport_heatmap(rows, period)}
