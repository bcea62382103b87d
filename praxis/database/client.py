"""
Supabase Client Configuration

Workers and the API both use the service-role client; the core never
acts with end-user credentials.
"""

from functools import lru_cache

import httpx
from postgrest.exceptions import APIError
from supabase import create_client, Client

from praxis.config import config
from praxis.errors import ConflictError, NotFoundError, PersistenceError


# Raised by complete_plan_generation() when the expected version does not match
SERIALIZATION_FAILURE = "40001"
# Raised by complete_plan_generation() for an unknown plan id
NO_DATA_FOUND = "P0002"


class SupabaseClientError(PersistenceError):
    """Raised when Supabase client cannot be initialized."""
    pass


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """
    Get Supabase client with service role key (admin access).

    WARNING: This client bypasses Row Level Security!
    Only use for server-side operations.
    """
    if not config.SUPABASE_URL:
        raise SupabaseClientError(
            "SUPABASE_URL is not configured. "
            "Set it in your .env file or environment variables."
        )

    if not config.SUPABASE_SERVICE_KEY:
        raise SupabaseClientError(
            "SUPABASE_SERVICE_KEY is not configured. "
            "Set it in your .env file or environment variables."
        )

    return create_client(
        config.SUPABASE_URL,
        config.SUPABASE_SERVICE_KEY
    )


def execute(query, action: str):
    """
    Execute a PostgREST query, translating transport and API failures.

    Raises:
        ConflictError: the database reported a serialization failure
        NotFoundError: a database function found no row to work on
        PersistenceError: any other failure
    """
    try:
        return query.execute()
    except APIError as e:
        if getattr(e, "code", None) == SERIALIZATION_FAILURE:
            raise ConflictError(f"{action}: {e.message}") from e
        if getattr(e, "code", None) == NO_DATA_FOUND:
            raise NotFoundError(f"{action}: {e.message}") from e
        raise PersistenceError(f"{action} failed: {e.message}") from e
    except httpx.HTTPError as e:
        raise PersistenceError(f"{action} failed: {e}") from e
