"""
Sync error taxonomy.

Every failure a sync workflow can record carries a stable ``code`` so the
ledger, the routers and the CLI can report it without string matching.
"""


class SyncError(Exception):
    """Base class for failures inside a sync attempt."""

    code = "sync_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationMissing(SyncError):
    """No FTP credentials (or no Admin API session) stored for the shop."""

    code = "configuration_missing"


class FtpConnectionError(SyncError, ConnectionError):
    """FTP handshake or login failed."""

    code = "connection_error"


class NotFoundError(SyncError):
    """Order or catalog variant absent on the commerce platform."""

    code = "not_found"


class TransferError(SyncError):
    """Upload, download, listing, mkdir or rename failed on an open session."""

    code = "transfer_error"


class ParseError(SyncError):
    """Malformed inventory line. Recovered locally by skipping the line."""

    code = "parse_error"


class PlatformApiError(SyncError):
    """Shopify Admin API call failed or returned user errors."""

    code = "platform_api_error"
