"""
Praxis Database Layer

Supabase client and the service classes the pipeline consumes.
"""

from .client import get_supabase_admin_client, SupabaseClientError
from .plans import PlanService
from .tasks import TaskService
from .users import UserService

__all__ = [
    "get_supabase_admin_client",
    "SupabaseClientError",
    "PlanService",
    "TaskService",
    "UserService",
]
