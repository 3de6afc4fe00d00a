"""
API v1 router that aggregates all endpoint routers.
Business routes require a bearer token; public, cron, webhook and health
routes authenticate by other means or not at all.
"""

from fastapi import APIRouter, Depends
from ollie_invoice.api.v1.middleware import require_business

from ollie_invoice.api.v1.endpoints import (
    health,
    public,
    cron,
    webhooks,
    tax_types,
    invoices,
    usage,
    dashboard,
)

api_router = APIRouter()

# Routes without bearer authentication
api_router.include_router(health.router, tags=["health"])
api_router.include_router(public.router, prefix="/public", tags=["public"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

# Business-scoped routes
api_router.include_router(
    tax_types.router,
    prefix="/tax-types",
    tags=["tax-types"],
    dependencies=[Depends(require_business)],
)
api_router.include_router(
    invoices.router,
    prefix="/invoices",
    tags=["invoices"],
    dependencies=[Depends(require_business)],
)
api_router.include_router(
    usage.router,
    prefix="/usage",
    tags=["usage"],
    dependencies=[Depends(require_business)],
)
api_router.include_router(
    dashboard.router,
    prefix="/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(require_business)],
)
