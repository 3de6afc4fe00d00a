"""
Health controller.
Coordinates health service to return health status.
"""

from ollie_invoice.controllers.base_controller import BaseController
from ollie_invoice.schemas.health import HealthResponse
from ollie_invoice.services.health_service import HealthService


class HealthController(BaseController):
    """Controller for health check operations."""

    def __init__(self, health_service: HealthService = None):
        self.health_service = health_service or HealthService()

    async def get_health(self) -> HealthResponse:
        return await self.health_service.get_health()
