# supabase_client.py - Supabase client initialization and auth helpers

from supabase import create_client, Client

from config import SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_ANON_KEY
from errors import ConfigurationError

# Global Supabase client instances
_supabase_admin: Client = None
_supabase_client: Client = None


def get_supabase_admin() -> Client:
    """
    Get Supabase client with service role key (admin privileges).
    Only used for the profiles table, which sits outside per-user RLS.
    """
    global _supabase_admin

    if _supabase_admin is None:
        if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        _supabase_admin = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)

    return _supabase_admin


def get_supabase_client() -> Client:
    """
    Get Supabase client with anonymous key (limited permissions).
    Used to verify user access tokens.
    """
    global _supabase_client

    if _supabase_client is None:
        if not SUPABASE_URL or not SUPABASE_ANON_KEY:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

        _supabase_client = create_client(SUPABASE_URL, SUPABASE_ANON_KEY)

    return _supabase_client


def get_user_from_token(access_token: str):
    """Get user information for a JWT issued by Supabase Auth."""
    supabase = get_supabase_client()
    return supabase.auth.get_user(access_token)


def fetch_profile(user_id: str) -> dict | None:
    result = (
        get_supabase_admin()
        .table("profiles")
        .select("id, email, full_name, avatar_url, created_at, updated_at")
        .eq("id", user_id)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def create_profile(user_id: str, access_token: str) -> dict | None:
    """Create the profile row from the auth user's email and metadata."""
    auth_user = getattr(get_user_from_token(access_token), "user", None)
    metadata = getattr(auth_user, "user_metadata", None) or {}
    row = {
        "id": user_id,
        "email": getattr(auth_user, "email", None),
        "full_name": metadata.get("full_name"),
        "avatar_url": metadata.get("avatar_url"),
    }
    result = get_supabase_admin().table("profiles").insert(row).execute()
    return result.data[0] if result.data else None
