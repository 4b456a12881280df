# chat_service/main.py
"""
FastAPI application entry point.
Sets up logging, database migrations and API routes.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from fastapi import FastAPI

from chat_service.routers import health, chat, chats
from chat_service.database import log_database_target
from chat_service.config import settings

# Configure logging level from environment variable
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

# backend/ holds alembic.ini
BACKEND_DIR = Path(__file__).resolve().parents[1]

app = FastAPI(title="Chat Service", version="0.1.0")

# ---- Database Migration Function ----
def run_migrations() -> None:
    """Run Alembic database migrations on startup."""
    # Ensure Alembic sees DATABASE_URL
    os.environ.setdefault("DATABASE_URL", settings.DATABASE_URL)
    logger.warning("Running Alembic migrations...")
    subprocess.check_call(["alembic", "upgrade", "head"], cwd=BACKEND_DIR)
    logger.warning("Migrations complete.")

# ---- Startup Event Handler ----
@app.on_event("startup")
def _bootstrap() -> None:
    if settings.CHAT_STORE == "database":
        if settings.RUN_MIGRATIONS:
            run_migrations()
        log_database_target()
    else:
        logger.warning(f"Chat store: {settings.CHAT_STORE} (chats are lost on restart)")

# ---- API Routes ----
app.include_router(health.router)
app.include_router(chat.router)
app.include_router(chats.router)

# ---- Root Endpoint ----
@app.get("/")
def root():
    return {"status": "ok", "message": "Chat service is running"}
