# src/nekonymous/main.py
"""Main entry point for the Nekonymous application."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from nekonymous.api.v1 import system_router, webhook_router
from nekonymous.core.settings import settings
from nekonymous.db.session import SessionLocal, create_tables
from nekonymous.repositories.kv_store import KeyValueStore
from nekonymous.services.telegram import get_telegram_client

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Configure logger for this module
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Anonymous message relay for Telegram",
    version=settings.app_version,
)

# Include API routers
app.include_router(webhook_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    create_tables()
    db = SessionLocal()
    try:
        purged = KeyValueStore(db).purge_expired()
    finally:
        db.close()
    if purged:
        logger.info("Purged %s expired records", purged)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_telegram_client().close()

@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}

@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "description": "Anonymous message relay for Telegram",
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("nekonymous.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
