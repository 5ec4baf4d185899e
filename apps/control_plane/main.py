"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

logging.basicConfig(level=logging.INFO)
from fastapi.middleware.cors import CORSMiddleware

from apps.control_plane.db import ensure_tables
from apps.control_plane.routes import distribution, health, sync, versions
from apps.control_plane.settings import settings

# CORS: allow only specified origins (no wildcard).
# Env: CORS_ALLOW_ORIGINS="https://console.example.com,http://localhost:3000" (comma-separated).
# If not set, default to localhost only for local dev.
CORS_DEFAULT_ORIGINS = ["http://localhost:3000", "http://localhost:8501"]
CORS_ORIGINS = settings.CORS_ALLOW_ORIGINS or CORS_DEFAULT_ORIGINS


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Ensure tables exist on startup. Postgres schema is owned by Alembic (ensure_tables no-ops there)."""
    ensure_tables()
    yield


app = FastAPI(
    title="Config Sync Control Plane",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, allow_origins=CORS_ORIGINS, allow_methods=["*"], allow_headers=["*"])

app.include_router(health.router, tags=["health"])
app.include_router(versions.router, prefix="/tenants", tags=["versions"])
app.include_router(distribution.router, tags=["distribution"])
app.include_router(sync.router, tags=["sync"])
