"""HTTP routers."""

from praxis.routes.plans import router as plans_router
from praxis.routes.tasks import router as tasks_router
from praxis.routes.users import router as users_router

__all__ = ["plans_router", "tasks_router", "users_router"]
