"""
auth.py - Request identity
Bearer tokens are verified by the hosted auth provider; this module never
signs or decodes tokens itself. Routes receive a UserScope and must scope
every query by its user_id.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx
from fastapi import Depends, Request
from starlette.concurrency import run_in_threadpool
from supabase import AuthError, AuthRetryableError

from errors import AuthenticationError, UpstreamError
from supabase_client import get_user_from_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserScope:
    """Caller identity for one request."""

    user_id: str
    access_token: str


class IdentityVerifier(ABC):
    """Turns a bearer token into a user id or raises AuthenticationError."""

    @abstractmethod
    async def verify(self, token: str) -> str:
        ...


class SupabaseIdentityVerifier(IdentityVerifier):
    """Asks Supabase Auth who owns the token."""

    async def verify(self, token: str) -> str:
        try:
            response = await run_in_threadpool(get_user_from_token, token)
        except AuthRetryableError as e:
            logger.error("Auth provider unavailable: %s", e)
            raise UpstreamError("Authentication service unavailable")
        except AuthError as e:
            logger.info("Token rejected by auth provider: %s", e)
            raise AuthenticationError("Invalid token")
        except httpx.HTTPError as e:
            logger.error("Auth provider unreachable: %s", e)
            raise UpstreamError("Authentication service unavailable")

        user = getattr(response, "user", None)
        user_id = getattr(user, "id", None)
        if not user_id:
            raise AuthenticationError("Invalid token")
        return str(user_id)


_verifier = SupabaseIdentityVerifier()


def get_identity_verifier() -> IdentityVerifier:
    return _verifier


def extract_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid Authorization header")
    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise AuthenticationError("Missing or invalid Authorization header")
    return token


async def get_user_scope(
    request: Request,
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> UserScope:
    """
    FastAPI dependency - extracts the Bearer token from the Authorization
    header, verifies it with the identity provider and returns the scope.
    Raises AuthenticationError (401) if the token is missing or invalid.
    """
    token = extract_bearer_token(request)
    user_id = await verifier.verify(token)
    return UserScope(user_id=user_id, access_token=token)
