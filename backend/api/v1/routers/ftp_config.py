"""
FTP Config Router — per-shop FTP credentials.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_shop, get_db, get_ftp_connector
from core.config import get_settings
from core.errors import ConfigurationMissing
from db.credentials import DEFAULT_FTP_PORT, get_ftp_config, load_ftp_credentials, save_ftp_config
from integrations.ftp import FtpConnector, check_connection

router = APIRouter(prefix="/api/v1/ftp-config", tags=["ftp-config"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class FtpConfigUpdate(BaseModel):
    host: str = Field(..., min_length=1, max_length=255)
    port: int = Field(DEFAULT_FTP_PORT, ge=1, le=65535)
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class FtpConfigResponse(BaseModel):
    shop: str
    configured: bool
    host: str = ""
    port: int = DEFAULT_FTP_PORT
    username: str = ""
    password_set: bool = False
    updated_at: datetime | None = None


class ConnectionTestResponse(BaseModel):
    connected: bool
    error: str | None = None


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=FtpConfigResponse)
async def read_ftp_config(
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """Current FTP configuration. The password is never returned."""
    config = await get_ftp_config(db, shop)
    if config is None:
        return FtpConfigResponse(shop=shop, configured=False)
    return FtpConfigResponse(
        shop=shop,
        configured=True,
        host=config.host,
        port=config.port,
        username=config.username,
        password_set=bool(config.password_encrypted),
        updated_at=config.updated_at,
    )


@router.put("/", response_model=FtpConfigResponse)
async def update_ftp_config(
    body: FtpConfigUpdate,
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """Create or replace the shop's FTP configuration."""
    await save_ftp_config(
        db,
        shop,
        host=body.host.strip(),
        port=body.port,
        username=body.username.strip(),
        password=body.password,
    )
    await db.commit()
    return await read_ftp_config(shop=shop, db=db)


@router.post("/test", response_model=ConnectionTestResponse)
async def test_ftp_connection(
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
    ftp_connect: FtpConnector = Depends(get_ftp_connector),
):
    """Log in with the stored credentials and list the home directory."""
    try:
        credentials = await load_ftp_credentials(db, shop)
    except ConfigurationMissing as exc:
        raise HTTPException(status_code=400, detail=exc.message)

    connected, error = await check_connection(credentials, get_settings(), connect=ftp_connect)
    return ConnectionTestResponse(connected=connected, error=error)
