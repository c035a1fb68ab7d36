from fastapi import APIRouter, Depends, Path, Query
from typing import Literal, Optional

from auth import UserScope, get_user_scope
from errors import NotFoundError
from providers import BaseProvider, get_llm_provider
from services.recommendation_service import RecommendationService
from supabase_rest import SupabaseRest, get_db

router = APIRouter(prefix="/api/v1/recommendations", tags=["Recommendations"])


@router.post("/generate")
async def generate_recommendations(
    focus: Optional[Literal["savings", "eco", "transport", "health"]] = Query(None),
    scope: UserScope = Depends(get_user_scope),
    db: SupabaseRest = Depends(get_db),
    provider: BaseProvider = Depends(get_llm_provider),
):
    saved = await RecommendationService.generate(db, scope.user_id, provider, focus)
    return {"success": True, "recommendations": saved}


@router.get("")
async def list_recommendations(scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    """Unexpired recommendations only."""
    rows = await RecommendationService.list_active(db, scope.user_id)
    return {"success": True, "recommendations": rows}


@router.patch("/{recommendation_id}/seen")
async def mark_seen(recommendation_id: int = Path(gt=0), scope: UserScope = Depends(get_user_scope),
                    db: SupabaseRest = Depends(get_db)):
    rows = await db.update(
        "recommendations", {"id": recommendation_id, "user_id": scope.user_id}, {"seen": True}
    )
    if not rows:
        raise NotFoundError("Recommendation not found")
    return {"success": True, "recommendation": rows[0]}
