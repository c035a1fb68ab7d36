import math
from datetime import datetime

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field, model_validator
from typing import Literal, Optional

from auth import UserScope, get_user_scope
from errors import NotFoundError
from services.report_service import to_number
from supabase_rest import SupabaseRest, get_db

router = APIRouter(prefix="/api/v1/incomes", tags=["Incomes"])

COLUMNS = "*, category:categories(id, name, color, icon)"
DEFAULT_PAGE_SIZE = 20


class IncomeCreate(BaseModel):
    amount: float = Field(gt=0)
    categoryId: Optional[int] = None
    source: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    receivedAt: Optional[datetime] = None


class IncomeUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    categoryId: Optional[int] = None
    source: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    receivedAt: Optional[datetime] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.model_fields_set:
            raise ValueError("Provide at least one field to update")
        for field in ("amount", "receivedAt"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class IncomeListParams(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    categoryId: Optional[int] = None
    sort: Literal["created_at", "amount"] = "created_at"
    order: Literal["asc", "desc"] = "desc"
    page: int = 1
    pageSize: int = DEFAULT_PAGE_SIZE


FIELD_MAP = {
    "amount": "amount",
    "categoryId": "category_id",
    "source": "source",
    "description": "description",
    "receivedAt": "created_at",
}


@router.get("")
async def list_incomes(params: IncomeListParams = Depends(), scope: UserScope = Depends(get_user_scope),
                       db: SupabaseRest = Depends(get_db)):
    page = params.page if params.page > 0 else 1
    page_size = params.pageSize if params.pageSize > 0 else DEFAULT_PAGE_SIZE

    where = []
    if params.start:
        where.append(("created_at", "gte", params.start))
    if params.end:
        where.append(("created_at", "lte", params.end))
    filters = {"user_id": scope.user_id}
    if params.categoryId:
        filters["category_id"] = params.categoryId

    rows, total = await db.select_with_count(
        "incomes",
        columns=COLUMNS,
        filters=filters,
        where=where,
        order=[(params.sort, params.order == "asc")],
        limit=page_size,
        offset=(page - 1) * page_size,
    )

    total_amount = sum(to_number(i.get("amount")) for i in rows)
    return {
        "success": True,
        "data": rows,
        "pagination": {
            "page": page,
            "pageSize": page_size,
            "total": total,
            "totalPages": math.ceil(total / page_size),
        },
        "summary": {"totalAmount": round(total_amount, 2), "count": total},
    }


@router.post("", status_code=201)
async def create_income(body: IncomeCreate, scope: UserScope = Depends(get_user_scope),
                        db: SupabaseRest = Depends(get_db)):
    payload = {"user_id": scope.user_id, "amount": body.amount}
    if body.categoryId is not None:
        payload["category_id"] = body.categoryId
    if body.source:
        payload["source"] = body.source
    if body.description:
        payload["description"] = body.description
    if body.receivedAt:
        payload["created_at"] = body.receivedAt

    data = await db.insert_one("incomes", payload, columns=COLUMNS)
    return {"success": True, "data": data}


@router.patch("/{income_id}")
async def update_income(body: IncomeUpdate, income_id: int = Path(gt=0),
                        scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    update = {FIELD_MAP[k]: v for k, v in body.model_dump(exclude_unset=True).items()}
    rows = await db.update("incomes", {"id": income_id, "user_id": scope.user_id}, update, columns=COLUMNS)
    if not rows:
        raise NotFoundError("Income not found")
    return {"success": True, "data": rows[0]}


@router.delete("/{income_id}")
async def delete_income(income_id: int = Path(gt=0), scope: UserScope = Depends(get_user_scope),
                        db: SupabaseRest = Depends(get_db)):
    rows = await db.delete("incomes", {"id": income_id, "user_id": scope.user_id})
    if not rows:
        raise NotFoundError("Income not found")
    return {"success": True}
