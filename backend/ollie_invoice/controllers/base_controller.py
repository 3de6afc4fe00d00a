"""
Base controller class.
Controllers sit between the endpoints and the services: they build the
services for one request and hand back Pydantic schemas, never ORM rows.
"""

from abc import ABC


class BaseController(ABC):
    """Base controller class for all controllers."""
