"""Template CRUD and search endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from prompt_studio.api.models import (
    Page,
    TemplateCreate,
    TemplateResponse,
    TemplateSearchRequest,
    TemplateUpdate,
    VersionResponse,
)
from prompt_studio.core.errors import ValidationError
from prompt_studio.core.templates import (
    TemplateRegistry,
    TemplateSearchCriteria,
    get_template_registry,
)
from prompt_studio.core.versions import VersionManager, get_version_manager
from prompt_studio.db.models import PromptTemplate

router = APIRouter()


def _template_page(page: dict[str, Any]) -> Page[TemplateResponse]:
    content = [TemplateResponse(**t.model_dump()) for t in page["content"]]
    return Page[TemplateResponse](**{**page, "content": content})


def _require(template: PromptTemplate | None, template_id: str) -> PromptTemplate:
    if template is None:
        raise HTTPException(status_code=404, detail=f"Template '{template_id}' not found")
    return template


@router.get("", response_model=Page[TemplateResponse])
async def list_templates(
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1),
    registry: TemplateRegistry = Depends(get_template_registry),
) -> Page[TemplateResponse]:
    """List templates, most recently updated first."""
    return _template_page(registry.list_templates(page, size))


@router.post("", response_model=TemplateResponse, status_code=201)
async def create_template(
    data: TemplateCreate,
    registry: TemplateRegistry = Depends(get_template_registry),
) -> TemplateResponse:
    """Create a new template."""
    try:
        template = registry.create_template(
            name=data.name,
            project_id=data.project_id,
            description=data.description,
            category=data.category,
            created_by=data.created_by,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"message": e.message, "errors": e.errors})
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return TemplateResponse(**template.model_dump())


@router.post("/search", response_model=Page[TemplateResponse])
async def search_templates(
    criteria: TemplateSearchRequest,
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1),
    registry: TemplateRegistry = Depends(get_template_registry),
) -> Page[TemplateResponse]:
    """Search templates by text, project, category, author and version counters."""
    result = registry.search_templates(
        TemplateSearchCriteria(**criteria.model_dump()), page, size
    )
    return _template_page(result)


@router.get("/categories", response_model=list[str])
async def list_categories(
    registry: TemplateRegistry = Depends(get_template_registry),
) -> list[str]:
    """Distinct template categories."""
    return registry.list_categories()


@router.get("/check-name", response_model=bool)
async def check_name(
    name: str,
    project_id: str | None = None,
    registry: TemplateRegistry = Depends(get_template_registry),
) -> bool:
    """Whether a template name is already taken (within a project when given)."""
    return registry.name_exists(name, project_id)


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: str,
    registry: TemplateRegistry = Depends(get_template_registry),
) -> TemplateResponse:
    """Get a template by id."""
    template = _require(registry.get_template(template_id), template_id)
    return TemplateResponse(**template.model_dump())


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: str,
    data: TemplateUpdate,
    registry: TemplateRegistry = Depends(get_template_registry),
) -> TemplateResponse:
    """Update a template's fields."""
    try:
        template = registry.update_template(template_id, **data.model_dump(exclude_none=True))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"message": e.message, "errors": e.errors})
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    template = _require(template, template_id)
    return TemplateResponse(**template.model_dump())


@router.delete("/{template_id}", status_code=204)
async def delete_template(
    template_id: str,
    registry: TemplateRegistry = Depends(get_template_registry),
) -> None:
    """Delete a template and all of its versions."""
    if not registry.delete_template(template_id):
        raise HTTPException(status_code=404, detail=f"Template '{template_id}' not found")


@router.get("/{template_id}/versions", response_model=Page[VersionResponse])
async def list_template_versions(
    template_id: str,
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1),
    versions: VersionManager = Depends(get_version_manager),
) -> Page[VersionResponse]:
    """Versions of a template, highest version number first."""
    result = versions.list_by_template(template_id, page, size)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Template '{template_id}' not found")
    content = [VersionResponse(**v.model_dump()) for v in result["content"]]
    return Page[VersionResponse](**{**result, "content": content})
