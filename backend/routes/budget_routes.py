from datetime import datetime

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field, model_validator
from typing import Optional

from auth import UserScope, get_user_scope
from errors import ConflictError, NotFoundError
from services.progress_service import ProgressService
from services.report_service import app_zone
from supabase_rest import SupabaseRest, get_db

router = APIRouter(prefix="/api/v1/budgets", tags=["Budgets"])

COLUMNS = "id, user_id, category_id, month, year, limit_amount, spent_amount"
LIST_COLUMNS = "id, category_id, limit_amount, spent_amount, month, year, category:categories(id, name, color, icon)"


class BudgetCreate(BaseModel):
    categoryId: int = Field(gt=0)
    limitAmount: float = Field(ge=0)
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = Field(None, ge=2000, le=9999)


class BudgetUpdate(BaseModel):
    limitAmount: Optional[float] = Field(None, ge=0)
    categoryId: Optional[int] = Field(None, gt=0)
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = Field(None, ge=2000, le=9999)

    @model_validator(mode="after")
    def _not_empty(self):
        if not {k for k in self.model_fields_set if getattr(self, k) is not None}:
            raise ValueError("Provide at least one field to update")
        return self


FIELD_MAP = {"limitAmount": "limit_amount", "categoryId": "category_id", "month": "month", "year": "year"}


@router.get("")
async def list_budgets(month: Optional[int] = Query(None, ge=1, le=12),
                       year: Optional[int] = Query(None, ge=2000, le=9999),
                       scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    now = datetime.now(app_zone())
    month = month or now.month
    year = year or now.year

    rows = await db.select(
        "budgets",
        columns=LIST_COLUMNS,
        filters={"user_id": scope.user_id, "month": month, "year": year},
        order=[("category_id", True)],
    )
    budgets = [ProgressService.budget_view(r) for r in rows]
    return {"success": True, "budgets": budgets, "summary": ProgressService.budget_summary(budgets)}


@router.post("", status_code=201)
async def upsert_budget(body: BudgetCreate, scope: UserScope = Depends(get_user_scope),
                        db: SupabaseRest = Depends(get_db)):
    now = datetime.now(app_zone())
    data = {
        "user_id": scope.user_id,
        "category_id": body.categoryId,
        "month": body.month or now.month,
        "year": body.year or now.year,
        "limit_amount": body.limitAmount,
    }
    budget = await db.upsert("budgets", data, on_conflict="user_id,category_id,month,year", columns=COLUMNS)
    return {"success": True, "budget": budget}


@router.patch("/{budget_id}")
async def update_budget(body: BudgetUpdate, budget_id: int = Path(gt=0),
                        scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    update = {FIELD_MAP[k]: v for k, v in body.model_dump(exclude_none=True).items()}
    try:
        rows = await db.update("budgets", {"id": budget_id, "user_id": scope.user_id}, update, columns=COLUMNS)
    except ConflictError:
        raise ConflictError("A budget already exists for that category/month/year")
    if not rows:
        raise NotFoundError("Budget not found")
    return {"success": True, "budget": rows[0]}


@router.delete("/{budget_id}")
async def delete_budget(budget_id: int = Path(gt=0), scope: UserScope = Depends(get_user_scope),
                        db: SupabaseRest = Depends(get_db)):
    rows = await db.delete("budgets", {"id": budget_id, "user_id": scope.user_id})
    if not rows:
        raise NotFoundError("Budget not found")
    return {"success": True}
