import logging

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field, StringConstraints, model_validator
from typing import Annotated, Optional

from auth import UserScope, get_user_scope
from errors import AppError, ConflictError, NotFoundError
from supabase_rest import SupabaseRest, get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/categories", tags=["Categories"])

COLUMNS = "id, name, color, icon"
DEFAULT_CATEGORY = "General"
DUPLICATE_NAME = "A category with that name already exists"

CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


class CategoryCreate(BaseModel):
    name: CategoryName
    color: Optional[str] = Field(None, max_length=50)
    icon: Optional[str] = Field(None, max_length=50)


class CategoryUpdate(BaseModel):
    name: Optional[CategoryName] = None
    color: Optional[str] = Field(None, max_length=50)
    icon: Optional[str] = Field(None, max_length=50)

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.model_fields_set:
            raise ValueError("Provide at least one field to update")
        if "name" in self.model_fields_set and self.name is None:
            raise ValueError("name cannot be null")
        return self


async def _list(db: SupabaseRest, user_id: str) -> list:
    return await db.select("categories", columns=COLUMNS, filters={"user_id": user_id}, order=[("name", True)])


@router.get("")
async def list_categories(scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    categories = await _list(db, scope.user_id)
    if not categories:
        # Every user owns at least one category; create the default lazily
        try:
            await db.insert("categories", {"user_id": scope.user_id, "name": DEFAULT_CATEGORY})
        except AppError as e:
            logger.warning("Could not create default category for %s: %s", scope.user_id, e.message)
        categories = await _list(db, scope.user_id)
    return {"success": True, "data": categories}


@router.post("", status_code=201)
async def create_category(body: CategoryCreate, scope: UserScope = Depends(get_user_scope),
                          db: SupabaseRest = Depends(get_db)):
    try:
        data = await db.insert_one(
            "categories",
            {"user_id": scope.user_id, "name": body.name, "color": body.color, "icon": body.icon},
            columns=COLUMNS,
        )
    except ConflictError:
        raise ConflictError(DUPLICATE_NAME)
    return {"success": True, "data": data}


@router.patch("/{category_id}")
async def update_category(body: CategoryUpdate, category_id: int = Path(gt=0),
                          scope: UserScope = Depends(get_user_scope), db: SupabaseRest = Depends(get_db)):
    update = body.model_dump(exclude_unset=True)
    try:
        rows = await db.update("categories", {"id": category_id, "user_id": scope.user_id}, update, columns=COLUMNS)
    except ConflictError:
        raise ConflictError(DUPLICATE_NAME)
    if not rows:
        raise NotFoundError("Category not found")
    return {"success": True, "data": rows[0]}


@router.delete("/{category_id}")
async def delete_category(category_id: int = Path(gt=0), scope: UserScope = Depends(get_user_scope),
                          db: SupabaseRest = Depends(get_db)):
    rows = await db.delete("categories", {"id": category_id, "user_id": scope.user_id})
    if not rows:
        raise NotFoundError("Category not found")
    return {"success": True}
