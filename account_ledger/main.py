"""
Account Ledger - Main Application Entry Point

Usage:
    uvicorn account_ledger.main:app --host 0.0.0.0 --port 5500
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from account_ledger.config import settings
from account_ledger.db import init_db, engine, async_session_maker
from account_ledger.api import users_router, credits_router, register_error_handlers

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown"""
    logger.info(f"{settings.app_name} starting up...")
    await init_db()
    logger.info("Database initialized")
    yield
    await engine.dispose()
    logger.info(f"{settings.app_name} shutdown complete")


app = FastAPI(
    title=settings.app_name,
    description="Public-key accounts, subscription documents and request credits",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(users_router, prefix=settings.api_prefix)
app.include_router(credits_router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    db_status = "connected"
    try:
        async with async_session_maker() as db:
            await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check could not reach the database: {e}")
        db_status = "error"

    return {
        "status": "ok" if db_status == "connected" else "degraded",
        "database": db_status,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("account_ledger.main:app", host=settings.host, port=settings.port, reload=settings.debug)
