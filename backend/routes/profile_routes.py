import logging

from fastapi import APIRouter, Depends
from postgrest.exceptions import APIError
from starlette.concurrency import run_in_threadpool

from auth import UserScope, get_user_scope
from supabase_client import create_profile, fetch_profile
from supabase_rest import raise_for_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Profile"])


async def _load_profile(user_id: str) -> dict | None:
    try:
        return await run_in_threadpool(fetch_profile, user_id)
    except APIError as e:
        raise_for_code(e.code, "profiles", e.message or "")


@router.get("/auth/me")
async def current_user(scope: UserScope = Depends(get_user_scope)):
    profile = await _load_profile(scope.user_id)
    return {"success": True, "user": {"id": scope.user_id, "profile": profile}}


@router.get("/profiles")
async def get_profile(scope: UserScope = Depends(get_user_scope)):
    """Return the caller's profile, creating it from the auth user on first access."""
    profile = await _load_profile(scope.user_id)
    if profile is None:
        try:
            profile = await run_in_threadpool(create_profile, scope.user_id, scope.access_token)
        except APIError as e:
            if e.code != "23505":
                raise_for_code(e.code, "profiles", e.message or "")
            # Created by a concurrent request
            logger.info("Profile for %s created concurrently", scope.user_id)
            profile = await _load_profile(scope.user_id)
    return {"success": True, "user": {"id": scope.user_id}, "profile": profile}
