"""
API middleware for authentication and common concerns.
Resolves the calling business from the bearer token.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from ollie_invoice.core.security import decode_access_token
from ollie_invoice.db.session import get_db
from ollie_invoice.db.repositories.business_repository import BusinessRepository
from ollie_invoice.models.business import Business

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_business(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Business:
    """
    Authentication dependency for business-scoped routes.

    Args:
        credentials: HTTP Bearer token credentials (injected by FastAPI)
        db: Database session

    Returns:
        The Business named by the token's ``business_id`` claim

    Raises:
        HTTPException: 401 if the token is invalid or the business is unknown
    """
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid authentication token")

    business_id_str = payload.get("business_id")
    if not business_id_str:
        raise _unauthorized("Token missing business ID")

    try:
        business_id = UUID(business_id_str)
    except ValueError:
        raise _unauthorized("Invalid business ID in token")

    business = await BusinessRepository(db).get(business_id)
    if not business:
        raise _unauthorized("Business not found")
    return business
