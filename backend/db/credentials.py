"""
Credential Store — per-shop FTP credentials and Admin API sessions.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ConfigurationMissing
from core.security import decrypt, encrypt
from db.models import FtpConfig, ShopSession
from db.upsert import upsert

DEFAULT_FTP_PORT = 21


@dataclass(frozen=True)
class FtpCredentials:
    host: str
    port: int
    username: str
    password: str

    def __repr__(self) -> str:
        return f"FtpCredentials(host={self.host!r}, port={self.port}, username={self.username!r})"


async def get_ftp_config(db: AsyncSession, shop: str) -> FtpConfig | None:
    result = await db.execute(
        select(FtpConfig).where(FtpConfig.shop == shop).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def save_ftp_config(
    db: AsyncSession,
    shop: str,
    *,
    host: str,
    username: str,
    password: str,
    port: int = DEFAULT_FTP_PORT,
) -> None:
    now = datetime.utcnow()
    fields = {
        "host": host,
        "port": port,
        "username": username,
        "password_encrypted": encrypt(password),
        "updated_at": now,
    }
    await upsert(
        db,
        FtpConfig,
        values={"shop": shop, "created_at": now, **fields},
        conflict_columns=["shop"],
        update_values=fields,
    )


async def load_ftp_credentials(db: AsyncSession, shop: str) -> FtpCredentials:
    """Return decrypted credentials or raise ConfigurationMissing."""
    config = await get_ftp_config(db, shop)
    if config is None:
        raise ConfigurationMissing("FTP configuration not found")
    return FtpCredentials(
        host=config.host,
        port=config.port or DEFAULT_FTP_PORT,
        username=config.username,
        password=decrypt(config.password_encrypted),
    )


async def save_shop_session(db: AsyncSession, shop: str, access_token: str, scope: str | None = None) -> None:
    fields = {"access_token_encrypted": encrypt(access_token), "scope": scope}
    await upsert(
        db,
        ShopSession,
        values={"shop": shop, "installed_at": datetime.utcnow(), **fields},
        conflict_columns=["shop"],
        update_values=fields,
    )


async def load_access_token(db: AsyncSession, shop: str) -> str:
    result = await db.execute(select(ShopSession).where(ShopSession.shop == shop))
    session = result.scalar_one_or_none()
    if session is None:
        raise ConfigurationMissing(f"No Admin API session stored for {shop}")
    return decrypt(session.access_token_encrypted)
