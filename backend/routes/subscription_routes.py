from datetime import datetime

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field, model_validator
from typing import Literal, Optional

from auth import UserScope, get_user_scope
from errors import NotFoundError
from services.interval_service import next_occurrence, resolve_next_charge
from services.report_service import app_zone
from supabase_rest import SupabaseRest, get_db

router = APIRouter(prefix="/api/v1/subscriptions", tags=["Subscriptions"])

COLUMNS = "*, category:categories(id, name, color, icon)"

Unit = Literal["day", "week", "month", "year"]


class SubscriptionCreate(BaseModel):
    amount: float = Field(gt=0)
    merchant: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    categoryId: Optional[int] = None
    everyN: int = Field(1, gt=0)
    unit: Unit
    startDate: Optional[datetime] = None
    active: Optional[bool] = None


class SubscriptionUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    merchant: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    categoryId: Optional[int] = None
    everyN: Optional[int] = Field(None, gt=0)
    unit: Optional[Unit] = None
    startDate: Optional[datetime] = None
    nextChargeAt: Optional[datetime] = None
    active: Optional[bool] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if not {k for k in self.model_fields_set if getattr(self, k) is not None}:
            raise ValueError("Provide at least one field to update")
        return self


@router.get("")
async def list_subscriptions(active: Optional[bool] = Query(None), scope: UserScope = Depends(get_user_scope),
                             db: SupabaseRest = Depends(get_db)):
    filters = {"user_id": scope.user_id}
    if active is not None:
        filters["active"] = active
    rows = await db.select("subscriptions", columns=COLUMNS, filters=filters, order=[("next_charge_at", True)])
    return {"success": True, "data": rows}


@router.post("", status_code=201)
async def create_subscription(body: SubscriptionCreate, scope: UserScope = Depends(get_user_scope),
                              db: SupabaseRest = Depends(get_db)):
    start = body.startDate or datetime.now(app_zone())
    payload = {
        "user_id": scope.user_id,
        "amount": body.amount,
        "every_n": body.everyN,
        "unit": body.unit,
        "start_date": start,
        "next_charge_at": next_occurrence(start, body.everyN, body.unit),
        "active": body.active if body.active is not None else True,
    }
    if body.categoryId is not None:
        payload["category_id"] = body.categoryId
    if body.merchant:
        payload["merchant"] = body.merchant
    if body.description:
        payload["description"] = body.description

    data = await db.insert_one("subscriptions", payload, columns=COLUMNS)
    return {"success": True, "data": data}


@router.patch("/{subscription_id}")
async def update_subscription(body: SubscriptionUpdate, subscription_id: int = Path(gt=0),
                              scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    filters = {"id": subscription_id, "user_id": scope.user_id}
    update = {}
    if body.amount is not None:
        update["amount"] = body.amount
    if body.merchant is not None:
        update["merchant"] = body.merchant
    if body.description is not None:
        update["description"] = body.description
    if body.categoryId is not None:
        update["category_id"] = body.categoryId
    if body.active is not None:
        update["active"] = body.active
    if body.startDate is not None:
        update["start_date"] = body.startDate
    if body.everyN is not None:
        update["every_n"] = body.everyN
    if body.unit is not None:
        update["unit"] = body.unit

    # Cadence changed without an explicit override: recompute from merged values
    current = None
    cadence_changed = body.startDate is not None or body.everyN is not None or body.unit is not None
    if body.nextChargeAt is None and cadence_changed:
        current = await db.select_one("subscriptions", columns="start_date, every_n, unit", filters=filters)
        if not current:
            raise NotFoundError("Subscription not found")

    next_charge = resolve_next_charge(current, body.startDate, body.everyN, body.unit, body.nextChargeAt)
    if next_charge is not None:
        update["next_charge_at"] = next_charge

    rows = await db.update("subscriptions", filters, update, columns=COLUMNS)
    if not rows:
        raise NotFoundError("Subscription not found")
    return {"success": True, "data": rows[0]}


@router.delete("/{subscription_id}")
async def delete_subscription(subscription_id: int = Path(gt=0), scope: UserScope = Depends(get_user_scope),
                              db: SupabaseRest = Depends(get_db)):
    rows = await db.delete("subscriptions", {"id": subscription_id, "user_id": scope.user_id})
    if not rows:
        raise NotFoundError("Subscription not found")
    return {"success": True}
