from datetime import datetime

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field, model_validator
from typing import Optional

from auth import UserScope, get_user_scope
from errors import NotFoundError
from services.progress_service import ProgressService
from supabase_rest import SupabaseRest, get_db

router = APIRouter(prefix="/api/v1/savings-goals", tags=["Savings Goals"])

COLUMNS = "id, name, target_amount, saved_amount, deadline"


class GoalCreate(BaseModel):
    name: str = Field(min_length=1)
    targetAmount: float = Field(gt=0)
    deadline: Optional[datetime] = None


class GoalContribution(BaseModel):
    goalId: int = Field(gt=0)
    addAmount: float = Field(gt=0)


class GoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    targetAmount: Optional[float] = Field(None, gt=0)
    deadline: Optional[datetime] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if not {k for k in self.model_fields_set if getattr(self, k) is not None}:
            raise ValueError("Provide at least one field to update")
        return self


@router.get("")
async def list_goals(scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    rows = await db.select(
        "savings_goals",
        columns=COLUMNS,
        filters={"user_id": scope.user_id},
        order=[("created_at", False)],
    )
    return {"success": True, "goals": [ProgressService.goal_view(g) for g in rows]}


@router.post("", status_code=201)
async def create_goal(body: GoalCreate, scope: UserScope = Depends(get_user_scope),
                      db: SupabaseRest = Depends(get_db)):
    data = {"user_id": scope.user_id, "name": body.name, "target_amount": body.targetAmount}
    if body.deadline:
        data["deadline"] = body.deadline
    goal = await db.insert_one("savings_goals", data, columns=COLUMNS + ", created_at")
    return {"success": True, "goal": goal}


@router.patch("")
async def contribute_to_goal(body: GoalContribution, scope: UserScope = Depends(get_user_scope),
                             db: SupabaseRest = Depends(get_db)):
    """Add money to a goal. saved_amount only ever grows through this path."""
    filters = {"id": body.goalId, "user_id": scope.user_id}
    existing = await db.select_one("savings_goals", columns=COLUMNS, filters=filters)
    if not existing:
        raise NotFoundError("Goal not found")

    new_saved = ProgressService.contribute(existing.get("saved_amount"), body.addAmount)
    rows = await db.update("savings_goals", filters, {"saved_amount": new_saved}, columns=COLUMNS)
    if not rows:
        raise NotFoundError("Goal not found")
    return {"success": True, "goal": ProgressService.goal_view(rows[0])}


@router.patch("/{goal_id}")
async def update_goal(body: GoalUpdate, goal_id: int = Path(gt=0), scope: UserScope = Depends(get_user_scope),
                      db: SupabaseRest = Depends(get_db)):
    update = {}
    if body.name is not None:
        update["name"] = body.name
    if body.targetAmount is not None:
        update["target_amount"] = body.targetAmount
    if body.deadline is not None:
        update["deadline"] = body.deadline

    rows = await db.update("savings_goals", {"id": goal_id, "user_id": scope.user_id}, update, columns=COLUMNS)
    if not rows:
        raise NotFoundError("Goal not found")
    return {"success": True, "goal": ProgressService.goal_view(rows[0])}


@router.delete("/{goal_id}")
async def delete_goal(goal_id: int = Path(gt=0), scope: UserScope = Depends(get_user_scope),
                      db: SupabaseRest = Depends(get_db)):
    rows = await db.delete("savings_goals", {"id": goal_id, "user_id": scope.user_id})
    if not rows:
        raise NotFoundError("Goal not found")
    return {"success": True}
