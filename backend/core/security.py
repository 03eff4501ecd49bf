"""
Velocity FTP Sync Security Utilities

Encryption for stored secrets, Shopify webhook HMAC checks and
Shopify session token (App Bridge JWT) validation.
"""

import base64
import hashlib
import hmac
from urllib.parse import urlparse

from cryptography.fernet import Fernet
from jose import JWTError, jwt

from core.config import DEFAULT_ENCRYPTION_KEY, get_settings

settings = get_settings()

# Fernet encryption for FTP passwords and Admin API tokens
# IMPORTANT: Dev key must be deterministic so all processes share the same key.
if settings.encryption_key == DEFAULT_ENCRYPTION_KEY:
    _dev_key = base64.urlsafe_b64encode(hashlib.sha256(b"ftpsync-dev-key-not-for-production").digest())
    _fernet = Fernet(_dev_key)
else:
    _fernet = Fernet(settings.encryption_key.encode())


def encrypt(plaintext: str) -> str:
    """Encrypt sensitive data (FTP passwords, access tokens)."""
    return _fernet.encrypt(plaintext.encode()).decode()


def decrypt(ciphertext: str) -> str:
    """Decrypt sensitive data."""
    return _fernet.decrypt(ciphertext.encode()).decode()


def compute_webhook_hmac(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_webhook_hmac(body: bytes, signature: str, secret: str | None = None) -> bool:
    """Check the X-Shopify-Hmac-Sha256 header against the raw request body."""
    secret = secret if secret is not None else get_settings().shopify_api_secret
    if not secret or not signature:
        return False
    return hmac.compare_digest(compute_webhook_hmac(body, secret), signature)


def shop_from_session_token(token: str) -> str | None:
    """
    Validate a Shopify session token and return the shop domain it was issued for.

    Session tokens are HS256 JWTs signed with the app secret; the audience is
    the app's API key and ``dest`` holds ``https://<shop>.myshopify.com``.
    """
    runtime_settings = get_settings()
    if not runtime_settings.shopify_api_secret:
        return None
    try:
        payload = jwt.decode(
            token,
            runtime_settings.shopify_api_secret,
            algorithms=["HS256"],
            audience=runtime_settings.shopify_api_key or None,
            options={"verify_aud": bool(runtime_settings.shopify_api_key)},
        )
    except JWTError:
        return None

    dest = payload.get("dest", "")
    shop = urlparse(dest).netloc if "://" in dest else dest
    return shop or None
