"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging, the field cipher and the storage backend
  2. CORS middleware — allows frontend origins to make cross-origin requests
  3. Exception handlers — maps domain errors to HTTP responses
  4. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn manavault.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from manavault.config import settings
from manavault.crypto import FieldCipher
from manavault.database import Base, engine
from manavault.exceptions import register_exception_handlers
from manavault.repository.json_file import JsonFileRepository
from manavault.routers import admin, auth, cards, chats, profile, sets

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Configures logging, resolves the encryption key (explicit, key file,
      or a freshly generated key persisted to the key file) and prepares the
      storage backend: the shared JSON repository, or the SQL tables.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.state.cipher = FieldCipher.from_settings(settings)

    if settings.STORAGE_BACKEND == "json":
        app.state.repository = JsonFileRepository(settings.DATA_DIR)
        logger.info("Using JSON file storage in %s", settings.DATA_DIR)
    else:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Using SQL storage")
    yield
    # --- Shutdown ---
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Collectible card API with a daily mana economy and encrypted profiles",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(profile.router, prefix="/profile", tags=["Profile"])
app.include_router(cards.router, prefix="/cards", tags=["Cards"])
app.include_router(chats.router, prefix="/chats", tags=["Chats"])
app.include_router(sets.router, prefix="/sets", tags=["Sets"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers and uptime monitors."""
    return {"status": "ok", "version": settings.APP_VERSION}
