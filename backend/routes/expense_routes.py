import math
from datetime import datetime

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field, model_validator
from typing import Literal, Optional

from auth import UserScope, get_user_scope
from errors import NotFoundError
from services.report_service import to_number
from supabase_rest import SupabaseRest, get_db

router = APIRouter(prefix="/api/v1/expenses", tags=["Expenses"])

COLUMNS = "*, category:categories(id, name, color, icon)"
DEFAULT_PAGE_SIZE = 20


class ExpenseCreate(BaseModel):
    amount: float = Field(gt=0)
    categoryId: Optional[int] = None
    merchant: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    transportType: Optional[str] = Field(None, max_length=50)
    carbonKg: Optional[float] = Field(None, ge=0)
    createdAt: Optional[datetime] = None


class ExpenseUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    categoryId: Optional[int] = None
    merchant: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    transportType: Optional[str] = Field(None, max_length=50)
    carbonKg: Optional[float] = Field(None, ge=0)
    createdAt: Optional[datetime] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.model_fields_set:
            raise ValueError("Provide at least one field to update")
        for field in ("amount", "carbonKg", "createdAt"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class ExpenseListParams(BaseModel):
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    categoryId: Optional[int] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    minAmount: Optional[float] = None
    maxAmount: Optional[float] = None
    search: Optional[str] = None
    sortBy: Literal["created_at", "amount", "merchant"] = "created_at"
    sortOrder: Literal["asc", "desc"] = "desc"


# camelCase request field -> column
FIELD_MAP = {
    "amount": "amount",
    "categoryId": "category_id",
    "merchant": "merchant",
    "description": "description",
    "transportType": "transport_type",
    "carbonKg": "carbon_kg",
    "createdAt": "created_at",
}


def _clean_search(term: str) -> str:
    # PostgREST's or=() syntax reserves these characters
    return "".join(ch for ch in term if ch not in ",()").strip()


@router.get("")
async def list_expenses(params: ExpenseListParams = Depends(), scope: UserScope = Depends(get_user_scope),
                        db: SupabaseRest = Depends(get_db)):
    page = params.page if params.page > 0 else 1
    limit = params.limit if params.limit > 0 else DEFAULT_PAGE_SIZE

    where = []
    if params.startDate:
        where.append(("created_at", "gte", params.startDate))
    if params.endDate:
        where.append(("created_at", "lte", params.endDate))
    if params.minAmount is not None:
        where.append(("amount", "gte", params.minAmount))
    if params.maxAmount is not None:
        where.append(("amount", "lte", params.maxAmount))

    filters = {"user_id": scope.user_id}
    if params.categoryId:
        filters["category_id"] = params.categoryId

    search = None
    if params.search and _clean_search(params.search):
        search = (("merchant", "description"), _clean_search(params.search))

    rows, total = await db.select_with_count(
        "expenses",
        columns=COLUMNS,
        filters=filters,
        where=where,
        search=search,
        order=[(params.sortBy, params.sortOrder == "asc")],
        limit=limit,
        offset=(page - 1) * limit,
    )

    total_amount = sum(to_number(e.get("amount")) for e in rows)
    avg_amount = total_amount / len(rows) if rows else 0
    return {
        "success": True,
        "data": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
        "summary": {
            "totalAmount": round(total_amount, 2),
            "avgAmount": round(avg_amount, 2),
            "count": total,
        },
    }


@router.post("", status_code=201)
async def create_expense(body: ExpenseCreate, scope: UserScope = Depends(get_user_scope),
                         db: SupabaseRest = Depends(get_db)):
    payload = {
        "user_id": scope.user_id,
        "amount": body.amount,
        "carbon_kg": body.carbonKg if body.carbonKg is not None else 0,
    }
    if body.categoryId is not None:
        payload["category_id"] = body.categoryId
    if body.merchant:
        payload["merchant"] = body.merchant
    if body.description:
        payload["description"] = body.description
    if body.transportType:
        payload["transport_type"] = body.transportType
    if body.createdAt:
        payload["created_at"] = body.createdAt

    data = await db.insert_one("expenses", payload, columns=COLUMNS)
    return {"success": True, "data": data}


@router.patch("/{expense_id}")
async def update_expense(body: ExpenseUpdate, expense_id: int = Path(gt=0),
                         scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    update = {FIELD_MAP[k]: v for k, v in body.model_dump(exclude_unset=True).items()}
    rows = await db.update("expenses", {"id": expense_id, "user_id": scope.user_id}, update, columns=COLUMNS)
    if not rows:
        raise NotFoundError("Expense not found")
    return {"success": True, "data": rows[0]}


@router.delete("/{expense_id}")
async def delete_expense(expense_id: int = Path(gt=0), scope: UserScope = Depends(get_user_scope),
                         db: SupabaseRest = Depends(get_db)):
    rows = await db.delete("expenses", {"id": expense_id, "user_id": scope.user_id})
    if not rows:
        raise NotFoundError("Expense not found")
    return {"success": True}
