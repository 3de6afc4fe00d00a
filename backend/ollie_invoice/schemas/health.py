"""
Health check response schemas.
"""

from pydantic import BaseModel
from typing import Any, Dict, Literal


class HealthResponse(BaseModel):
    """
    Health check response schema.

    ``status`` reflects the database only; scheduler and notification
    entries in ``checks`` are informational.
    """
    status: Literal["ok", "degraded"]
    uptime: str
    checks: Dict[str, Any] = {}
