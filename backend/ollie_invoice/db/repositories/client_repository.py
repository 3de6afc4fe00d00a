"""
Client repository for database operations.
Clients are read only here; scoped lookups come from BaseRepository.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.db.repositories.base_repository import BaseRepository
from ollie_invoice.models.client import Client


class ClientRepository(BaseRepository[Client]):
    """Repository for client operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Client, session)
