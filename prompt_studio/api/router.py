"""Main API router — aggregates all endpoint modules."""

from fastapi import APIRouter

from prompt_studio.api.templates import router as templates_router
from prompt_studio.api.versions import router as versions_router

api_router = APIRouter()

api_router.include_router(templates_router, prefix="/templates", tags=["templates"])
api_router.include_router(versions_router, prefix="/versions", tags=["versions"])
