"""
Velocity FTP Sync API — FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings
from db.session import build_engine, build_sessionmaker

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events. The engine lives exactly as long as the app."""
    engine = build_engine(settings)
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)
    logger.info("Velocity FTP Sync API starting up", version=settings.app_version)
    yield
    await engine.dispose()
    logger.info("Velocity FTP Sync API shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Shopify ⇄ FTP order and inventory sync",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and register routers
from api.v1.routers import dashboard, ftp_config, inventory, orders, webhooks

app.include_router(ftp_config.router)
app.include_router(orders.router)
app.include_router(inventory.router)
app.include_router(dashboard.router)
app.include_router(webhooks.router)


def _mask(value: str) -> str | None:
    if not value:
        return None
    if len(value) <= 8:
        return "Set (masked)"
    return f"{value[:4]}...{value[-4:]}"


@app.get("/health")
async def health_check():
    """Health check with a masked view of the runtime configuration."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": {
            "APP_ENV": settings.app_env,
            "APP_URL": settings.app_url or None,
            "SHOPIFY_API_KEY": _mask(settings.shopify_api_key),
            "SHOPIFY_API_SECRET": "Set (masked)" if settings.shopify_api_secret else "Not set",
            "SHOPIFY_API_VERSION": settings.shopify_api_version,
            "SCOPES": settings.shopify_scopes,
            "DATABASE_URL": "Set (masked)" if settings.database_url else "Not set",
        },
    }
