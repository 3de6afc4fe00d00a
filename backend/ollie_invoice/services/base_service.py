"""
Base service class.
Services contain business logic and coordinate repositories.
"""

from abc import ABC
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession


class BaseService(ABC):
    """
    Base service class for all services.

    A service owns the transaction of the session it is given: it commits
    after a successful operation and leaves rollback to the caller.
    """

    def __init__(self, session: Optional[AsyncSession] = None):
        self.session = session
