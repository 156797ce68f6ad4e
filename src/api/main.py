import logging

from fastapi import FastAPI

from src.api.middleware import register_quota_error_handlers, tenant_context_middleware
from src.api.routes.admin import router as admin_router
from src.api.routes.billing import router as billing_router
from src.api.routes.company import router as company_router
from src.api.routes.expenses import router as expenses_router
from src.api.routes.projects import router as projects_router
from src.api.routes.users import router as users_router
from src.api.routes.webhooks import router as webhooks_router
from src.core.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title="Company Expenses API")
app.middleware("http")(tenant_context_middleware)
register_quota_error_handlers(app)
app.include_router(company_router, prefix="/api/v1")
app.include_router(projects_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(expenses_router, prefix="/api/v1")
app.include_router(billing_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(webhooks_router, prefix="/api/v1")


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    return {"status": "ok"}
