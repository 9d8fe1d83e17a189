"""Version lifecycle endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from prompt_studio.api.models import (
    AuditEntryResponse,
    BranchCreate,
    ComparisonResponse,
    LineageResponse,
    Page,
    ParameterValidationResponse,
    ParameterValuesRequest,
    RollbackRequest,
    StatusUpdate,
    VersionCreate,
    VersionResponse,
    VersionUpdate,
)
from prompt_studio.core.errors import InvalidTransition, LineageError, ValidationError
from prompt_studio.core.validation import validate_parameter_values
from prompt_studio.core.versions import VersionManager, get_version_manager
from prompt_studio.db.models import PromptVersion, VersionStatus

router = APIRouter()


def _response(version: PromptVersion) -> VersionResponse:
    return VersionResponse(**version.model_dump())


def _not_found(version_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Version '{version_id}' not found")


def _unprocessable(error: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": error.message, "errors": error.errors},
    )


@router.get("", response_model=Page[VersionResponse])
async def list_versions(
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1),
    versions: VersionManager = Depends(get_version_manager),
) -> Page[VersionResponse]:
    """All versions, newest first."""
    result = versions.list_all(page, size)
    content = [_response(v) for v in result["content"]]
    return Page[VersionResponse](**{**result, "content": content})


@router.post("", response_model=VersionResponse, status_code=201)
async def create_version(
    data: VersionCreate,
    versions: VersionManager = Depends(get_version_manager),
) -> VersionResponse:
    """Create a DRAFT version of a template."""
    try:
        version = versions.create_version(
            template_id=data.template_id,
            version_number=data.version_number,
            content=data.content,
            system_prompt=data.system_prompt,
            parent_version_id=data.parent_version_id,
            parameters=[p.to_parameter() for p in data.parameters],
            author=data.author,
        )
    except ValidationError as e:
        raise _unprocessable(e)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _response(version)


@router.get("/compare", response_model=ComparisonResponse)
async def compare_versions(
    source_id: str,
    target_id: str,
    versions: VersionManager = Depends(get_version_manager),
) -> ComparisonResponse:
    """Line diffs of content, system prompt and parameters, plus the parameter delta."""
    try:
        result = versions.compare(source_id, target_id)
    except ValidationError as e:
        raise _unprocessable(e)
    if result is None:
        raise HTTPException(status_code=404, detail="One or both versions not found")
    return ComparisonResponse.from_result(result)


@router.get("/{version_id}", response_model=VersionResponse)
async def get_version(
    version_id: str,
    versions: VersionManager = Depends(get_version_manager),
) -> VersionResponse:
    """Get a version by id."""
    version = versions.get_version(version_id)
    if version is None:
        raise _not_found(version_id)
    return _response(version)


@router.put("/{version_id}", response_model=VersionResponse)
async def update_version(
    version_id: str,
    data: VersionUpdate,
    versions: VersionManager = Depends(get_version_manager),
) -> VersionResponse:
    """Edit a DRAFT version. Other statuses are read-only."""
    changes = data.model_dump(exclude_unset=True, exclude={"author", "parameters"})
    if data.parameters is not None:
        changes["parameters"] = [p.to_parameter() for p in data.parameters]
    try:
        version = versions.update_version(version_id, author=data.author, **changes)
    except ValidationError as e:
        raise _unprocessable(e)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if version is None:
        raise _not_found(version_id)
    return _response(version)


@router.post("/{version_id}/branch", response_model=VersionResponse, status_code=201)
async def create_branch(
    version_id: str,
    data: BranchCreate,
    versions: VersionManager = Depends(get_version_manager),
) -> VersionResponse:
    """Create a new DRAFT version descending from this one."""
    parameters = (
        [p.to_parameter() for p in data.parameters] if data.parameters is not None else None
    )
    try:
        branch = versions.create_branch(
            parent_id=version_id,
            version_number=data.version_number,
            content=data.content,
            system_prompt=data.system_prompt,
            parameters=parameters,
            author=data.author,
        )
    except ValidationError as e:
        raise _unprocessable(e)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if branch is None:
        raise _not_found(version_id)
    return _response(branch)


@router.get("/{version_id}/status-transitions", response_model=dict[str, list[str]])
async def status_transitions(
    version_id: str,
    versions: VersionManager = Depends(get_version_manager),
) -> dict[str, list[str]]:
    """Current status mapped to the statuses it may move to."""
    transitions = versions.status_transitions(version_id)
    if transitions is None:
        raise _not_found(version_id)
    return transitions


@router.get("/{version_id}/can-transition", response_model=bool)
async def can_transition(
    version_id: str,
    status: VersionStatus,
    versions: VersionManager = Depends(get_version_manager),
) -> bool:
    """Whether the version may move to ``status`` right now."""
    allowed = versions.can_transition_to(version_id, status)
    if allowed is None:
        raise _not_found(version_id)
    return allowed


@router.post("/{version_id}/status", response_model=VersionResponse)
async def update_status(
    version_id: str,
    data: StatusUpdate,
    versions: VersionManager = Depends(get_version_manager),
) -> VersionResponse:
    """Move a version through the review lifecycle."""
    try:
        version = versions.update_status(
            version_id, data.status, comment=data.comment, author=data.author
        )
    except InvalidTransition as e:
        raise HTTPException(
            status_code=409,
            detail={
                "error": "invalid_transition",
                "message": str(e),
                "current": e.current.value,
                "target": e.target.value,
            },
        )
    if version is None:
        raise _not_found(version_id)
    return _response(version)


@router.post("/{version_id}/rollback", response_model=VersionResponse, status_code=201)
async def rollback_version(
    version_id: str,
    data: RollbackRequest,
    versions: VersionManager = Depends(get_version_manager),
) -> VersionResponse:
    """Restore this version's content as a new draft."""
    try:
        version = versions.rollback(version_id, comment=data.comment, author=data.author)
    except ValidationError as e:
        raise _unprocessable(e)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if version is None:
        raise _not_found(version_id)
    return _response(version)


@router.get("/{version_id}/lineage", response_model=LineageResponse)
async def get_lineage(
    version_id: str,
    versions: VersionManager = Depends(get_version_manager),
) -> LineageResponse:
    """Ancestor chain from the root to this version, and its direct branches."""
    try:
        lineage = versions.get_lineage(version_id)
    except LineageError:
        raise HTTPException(status_code=500, detail="Version lineage is inconsistent")
    if lineage is None:
        raise _not_found(version_id)
    return LineageResponse(
        version=_response(lineage["version"]),
        ancestors=[_response(v) for v in lineage["ancestors"]],
        children=[_response(v) for v in lineage["children"]],
    )


@router.get("/{version_id}/audit-trail", response_model=list[AuditEntryResponse])
async def audit_trail(
    version_id: str,
    versions: VersionManager = Depends(get_version_manager),
) -> list[AuditEntryResponse]:
    """Audit entries for a version, newest first."""
    entries = versions.get_audit_trail(version_id)
    if entries is None:
        raise _not_found(version_id)
    return [AuditEntryResponse(**e.model_dump()) for e in entries]


@router.post("/{version_id}/validate-parameters", response_model=ParameterValidationResponse)
async def validate_parameters(
    version_id: str,
    data: ParameterValuesRequest,
    versions: VersionManager = Depends(get_version_manager),
) -> ParameterValidationResponse:
    """Check parameter values against this version's definitions."""
    version = versions.get_version(version_id)
    if version is None:
        raise _not_found(version_id)
    result = validate_parameter_values(version.parameters, data.values)
    return ParameterValidationResponse(
        valid=result.valid,
        issues=[vars(i) for i in result.issues],
        missing_required=result.missing_required,
        unknown_parameters=result.unknown_parameters,
        validated_values=result.validated_values,
    )
