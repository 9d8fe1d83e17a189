"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prompt_studio.api.router import api_router
from prompt_studio.config import get_settings
from prompt_studio.db.client import get_supabase_client
from prompt_studio.utils.logging import setup_logging

logger = structlog.get_logger()

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("studio.starting", port=settings.port)

    get_supabase_client()
    logger.info("studio.supabase_connected")

    yield

    logger.info("studio.shutdown")


app = FastAPI(
    title="Prompt Studio",
    description="Prompt template and version lifecycle management",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Service info endpoint."""
    return {"service": "prompt-studio", "version": VERSION}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "prompt-studio", "version": VERSION}


def run() -> None:
    """Serve the API with uvicorn on the configured port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("prompt_studio.main:app", host="0.0.0.0", port=settings.port)
