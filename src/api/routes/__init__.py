from src.api.routes.admin import router as admin_router
from src.api.routes.billing import router as billing_router
from src.api.routes.company import router as company_router
from src.api.routes.expenses import router as expenses_router
from src.api.routes.projects import router as projects_router
from src.api.routes.users import router as users_router
from src.api.routes.webhooks import router as webhooks_router

__all__ = [
    "admin_router",
    "billing_router",
    "company_router",
    "expenses_router",
    "projects_router",
    "users_router",
    "webhooks_router",
]
