"""
Observability hooks.
Exceptions recorded here come from the global handlers and the scheduler.
"""

from typing import Optional
from fastapi import Request
import logging

from ollie_invoice.core.config import settings

logger = logging.getLogger(__name__)


def setup_observability() -> None:
    """Initialize observability for the service."""
    logger.info(
        "Setting up observability",
        extra={
            "service_name": settings.PROJECT_NAME,
            "version": settings.VERSION,
        },
    )


def record_exception(exc: Exception, request: Optional[Request] = None, **context) -> None:
    """
    Record an exception in the observability backend.

    Args:
        exc: The exception that occurred
        request: The FastAPI request object, absent for background jobs
        **context: Extra fields such as the template being processed
    """
    extra = {
        "exception_message": str(exc),
        **context,
    }
    if request is not None:
        extra["path"] = request.url.path

    logger.error(
        f"Exception recorded: {type(exc).__name__}",
        extra=extra,
    )
