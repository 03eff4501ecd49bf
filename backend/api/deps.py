"""
Velocity FTP Sync API Dependencies

Dependency injection for DB sessions, the current shop and the Admin API client.
"""

from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import ConfigurationMissing
from core.security import shop_from_session_token
from integrations.ftp import FtpConnector, open_ftp_session
from integrations.shopify import ShopifyAdminClient, build_admin_client

settings = get_settings()
security = HTTPBearer(auto_error=not settings.debug)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session from the app's sessionmaker."""
    async with request.app.state.sessionmaker() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_current_shop(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """Resolve the shop from the App Bridge session token. Bypassed in debug mode."""
    if settings.debug:
        return settings.dev_shop

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    shop = shop_from_session_token(credentials.credentials)
    if shop is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session token",
        )
    return shop


async def get_shopify_client(
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
) -> ShopifyAdminClient:
    try:
        return await build_admin_client(db, shop)
    except ConfigurationMissing as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)


def get_ftp_connector() -> FtpConnector:
    return open_ftp_session
