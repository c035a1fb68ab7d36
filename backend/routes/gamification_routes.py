from fastapi import APIRouter, Depends

from auth import UserScope, get_user_scope
from services.achievement_service import AchievementService
from supabase_rest import SupabaseRest, get_db

router = APIRouter(prefix="/api/v1/gamification", tags=["Gamification"])


@router.get("/achievements")
async def list_achievements(scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    result = await AchievementService.list_with_progress(db, scope.user_id)
    return {"success": True, **result}


@router.post("/check")
async def check_achievements(scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    unlocked = await AchievementService.check(db, scope.user_id)
    return {
        "success": True,
        "unlocked": unlocked,
        "count": len(unlocked),
        "message": "New achievements unlocked!" if unlocked else "No new achievements yet",
    }
