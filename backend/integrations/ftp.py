"""
FTP Transport

Opens a per-shop FTP session from stored credentials and exposes the handful
of primitives the sync workflows need:

  - ensure_directory / change_directory
  - upload / download (whole files, no resume)
  - list_files (regular files only; callers filter names)
  - rename (used to archive processed inventory files)

The blocking ``ftplib`` client runs in a worker thread so the request's event
loop keeps serving. There is no retry: any failure is terminal for the sync
attempt that hit it.
"""

from __future__ import annotations

import asyncio
import ftplib
import io
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass

import structlog

from core.config import Settings, get_settings
from core.errors import FtpConnectionError, TransferError
from db.credentials import FtpCredentials

logger = structlog.get_logger()

# Replies to MLSD meaning the server does not implement it
_UNSUPPORTED_REPLIES = ("500", "501", "502", "504")

# ftplib decodes replies as UTF-8; non-UTF-8 names in a listing raise UnicodeDecodeError
_TRANSFER_ERRORS = ftplib.all_errors + (UnicodeDecodeError,)


@dataclass(frozen=True)
class RemoteFile:
    name: str
    size: int | None = None
    modified: str | None = None


class FtpSession:
    """An open, logged-in FTP connection. Obtain one via ``open_ftp_session``."""

    def __init__(self, ftp: ftplib.FTP, host: str):
        self._ftp = ftp
        self.host = host
        self.logger = logger.bind(ftp_host=host)

    async def _call(self, action: str, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except _TRANSFER_ERRORS as exc:
            self.logger.error("ftp.operation_failed", action=action, error=str(exc))
            raise TransferError(f"FTP {action} failed: {exc}") from exc

    async def ensure_directory(self, path: str) -> None:
        """Create ``path`` unless it already exists."""
        await self._call("mkdir", self._ensure_directory, path)

    def _ensure_directory(self, path: str) -> None:
        try:
            self._ftp.mkd(path)
            self.logger.info("ftp.directory_created", path=path)
        except ftplib.error_perm:
            # Servers word "already exists" differently; probe instead of parsing.
            if not self._directory_exists(path):
                raise

    def _directory_exists(self, path: str) -> bool:
        cwd = self._ftp.pwd()
        try:
            self._ftp.cwd(path)
        except ftplib.error_perm:
            return False
        self._ftp.cwd(cwd)
        return True

    async def change_directory(self, path: str) -> None:
        await self._call("cwd", self._ftp.cwd, path)

    async def upload(self, data: bytes, remote_name: str) -> None:
        await self._call("upload", self._ftp.storbinary, f"STOR {remote_name}", io.BytesIO(data))
        self.logger.info("ftp.uploaded", remote_name=remote_name, size=len(data))

    async def download(self, remote_name: str) -> bytes:
        buffer = io.BytesIO()
        await self._call("download", self._ftp.retrbinary, f"RETR {remote_name}", buffer.write)
        return buffer.getvalue()

    async def list_files(self, path: str | None = None) -> list[RemoteFile]:
        return await self._call("list", self._list_files, path or "")

    def _list_files(self, path: str) -> list[RemoteFile]:
        try:
            entries = list(self._ftp.mlsd(path, facts=["type", "size", "modify"]))
        except ftplib.error_perm as exc:
            if not str(exc).startswith(_UNSUPPORTED_REPLIES):
                raise
            # NLST cannot tell files from directories; extension filtering does the rest.
            names = self._ftp.nlst(path) if path else self._ftp.nlst()
            return [RemoteFile(name=name.rsplit("/", 1)[-1]) for name in names]

        files = []
        for name, facts in entries:
            if facts.get("type", "").lower() != "file":
                continue
            size = facts.get("size")
            files.append(
                RemoteFile(
                    name=name,
                    size=int(size) if size and size.isdigit() else None,
                    modified=facts.get("modify"),
                )
            )
        return files

    async def rename(self, old_name: str, new_name: str) -> None:
        await self._call("rename", self._ftp.rename, old_name, new_name)
        self.logger.info("ftp.renamed", old_name=old_name, new_name=new_name)

    async def close(self) -> None:
        try:
            await asyncio.to_thread(self._ftp.quit)
        except ftplib.all_errors as exc:
            self.logger.warning("ftp.quit_failed", error=str(exc))
            self._ftp.close()


FtpConnector = Callable[[FtpCredentials, Settings], AbstractAsyncContextManager[FtpSession]]


def _login(credentials: FtpCredentials, settings: Settings) -> ftplib.FTP:
    ftp = ftplib.FTP_TLS() if settings.ftp_use_tls else ftplib.FTP()
    if settings.ftp_debug:
        ftp.set_debuglevel(1)
    try:
        if settings.ftp_timeout is not None:
            ftp.connect(credentials.host, credentials.port, timeout=settings.ftp_timeout)
        else:
            ftp.connect(credentials.host, credentials.port)
        ftp.login(credentials.username, credentials.password)
        if isinstance(ftp, ftplib.FTP_TLS):
            ftp.prot_p()
    except ftplib.all_errors:
        ftp.close()
        raise
    return ftp


@asynccontextmanager
async def open_ftp_session(
    credentials: FtpCredentials,
    settings: Settings | None = None,
) -> AsyncIterator[FtpSession]:
    """Connect and log in; the session is closed on every exit path."""
    settings = settings or get_settings()
    log = logger.bind(ftp_host=credentials.host, ftp_port=credentials.port)

    try:
        ftp = await asyncio.to_thread(_login, credentials, settings)
    except ftplib.all_errors as exc:
        log.error("ftp.connect_failed", error=str(exc))
        raise FtpConnectionError(f"FTP connection error: {exc}") from exc

    log.info("ftp.connected")
    session = FtpSession(ftp, credentials.host)
    try:
        yield session
    finally:
        await session.close()
        log.info("ftp.closed")


async def check_connection(
    credentials: FtpCredentials,
    settings: Settings | None = None,
    connect: FtpConnector = open_ftp_session,
) -> tuple[bool, str | None]:
    """Log in and list the working directory. Returns (ok, error message)."""
    settings = settings or get_settings()
    try:
        async with connect(credentials, settings) as session:
            await session.list_files()
    except (FtpConnectionError, TransferError) as exc:
        return False, exc.message
    return True, None
