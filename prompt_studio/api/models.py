"""Pydantic request/response models for the API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from prompt_studio.core.differ import VersionComparisonResult, VersionDiff
from prompt_studio.db.models import (
    AuditAction,
    ParameterType,
    PromptParameter,
    VersionStatus,
)

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Zero-based page of results."""

    content: list[T]
    total_elements: int
    total_pages: int
    size: int
    number: int
    first: bool
    last: bool


# --- Templates ---


class TemplateCreate(BaseModel):
    """Create a new template."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    project_id: str = Field(..., min_length=1)
    category: str = ""
    created_by: str = "system"


class TemplateUpdate(BaseModel):
    """Update a template's fields."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    project_id: str | None = None
    category: str | None = None


class TemplateSearchRequest(BaseModel):
    """Template search criteria. Omitted fields do not filter."""

    search_text: str | None = None
    project_id: str | None = None
    category: str | None = None
    created_by: str | None = None
    has_published_version: bool | None = None
    min_version_count: int | None = Field(default=None, ge=0)
    use_exact_match: bool = False
    use_fuzzy_match: bool = False


class TemplateResponse(BaseModel):
    """Template response."""

    id: str
    name: str
    description: str
    project_id: str
    category: str
    created_by: str
    created_at: datetime
    updated_at: datetime
    version_count: int
    has_published_version: bool


# --- Versions ---


class ParameterRequest(BaseModel):
    """A parameter definition as submitted."""

    id: str | None = None
    name: str
    description: str = ""
    parameter_type: ParameterType = ParameterType.STRING
    default_value: str | None = None
    required: bool = False
    validation_pattern: str | None = None

    def to_parameter(self) -> PromptParameter:
        return PromptParameter(**self.model_dump())


class ParameterResponse(BaseModel):
    id: str | None
    name: str
    description: str
    parameter_type: ParameterType
    default_value: str | None
    required: bool
    validation_pattern: str | None


class VersionCreate(BaseModel):
    """Create a new version of a template."""

    template_id: str
    version_number: str
    content: str
    system_prompt: str | None = None
    parent_version_id: str | None = None
    parameters: list[ParameterRequest] = Field(default_factory=list)
    author: str = "system"


class VersionUpdate(BaseModel):
    """Edit a draft version. Only fields that are sent are changed."""

    version_number: str | None = None
    content: str | None = None
    system_prompt: str | None = None
    parameters: list[ParameterRequest] | None = None
    author: str = "system"


class BranchCreate(BaseModel):
    """Branch from an existing version. Omitted content is copied from the parent."""

    version_number: str
    content: str | None = None
    system_prompt: str | None = None
    parameters: list[ParameterRequest] | None = None
    author: str = "system"


class StatusUpdate(BaseModel):
    """Move a version to a new status."""

    status: VersionStatus
    comment: str | None = None
    author: str = "system"


class RollbackRequest(BaseModel):
    """Restore an earlier version as a new draft."""

    comment: str | None = None
    author: str = "system"


class VersionResponse(BaseModel):
    """Version response."""

    id: str
    template_id: str
    template_name: str
    version_number: str
    content: str
    system_prompt: str | None
    created_by: str
    created_at: datetime
    updated_at: datetime
    status: VersionStatus
    parent_version_id: str | None
    parameters: list[ParameterResponse]


class DiffLineResponse(BaseModel):
    type: str
    content: str
    line_number: int
    source_line: int | None
    target_line: int | None

    @classmethod
    def from_diff(cls, diff: VersionDiff) -> DiffLineResponse:
        return cls(
            type=diff.type.value,
            content=diff.content,
            line_number=diff.line_number,
            source_line=diff.source_line,
            target_line=diff.target_line,
        )


class ParameterChangesResponse(BaseModel):
    added: list[ParameterResponse]
    removed: list[ParameterResponse]
    changed: list[ParameterResponse]


class ComparisonResponse(BaseModel):
    """Line diffs and parameter delta between two versions."""

    source_version_id: str
    source_version_number: str
    target_version_id: str
    target_version_number: str
    content_diff: list[DiffLineResponse]
    system_prompt_diff: list[DiffLineResponse]
    parameters_diff: list[DiffLineResponse]
    parameter_changes: ParameterChangesResponse
    similarity: float
    summary: str
    identical: bool

    @classmethod
    def from_result(cls, result: VersionComparisonResult) -> ComparisonResponse:
        def lines(diffs: list[VersionDiff]) -> list[DiffLineResponse]:
            return [DiffLineResponse.from_diff(d) for d in diffs]

        def params(items: list[PromptParameter]) -> list[ParameterResponse]:
            return [ParameterResponse(**p.model_dump()) for p in items]

        changes = result.parameter_changes
        return cls(
            source_version_id=result.source.id,
            source_version_number=result.source.version_number,
            target_version_id=result.target.id,
            target_version_number=result.target.version_number,
            content_diff=lines(result.content_diff),
            system_prompt_diff=lines(result.system_prompt_diff),
            parameters_diff=lines(result.parameters_diff),
            parameter_changes=ParameterChangesResponse(
                added=params(changes.added),
                removed=params(changes.removed),
                changed=params(changes.changed),
            ),
            similarity=result.similarity,
            summary=result.summary,
            identical=result.identical,
        )


class LineageResponse(BaseModel):
    """Ancestors run from the root to the version itself."""

    version: VersionResponse
    ancestors: list[VersionResponse]
    children: list[VersionResponse]


class AuditEntryResponse(BaseModel):
    """Version audit trail entry."""

    id: str
    version_id: str
    action: AuditAction
    performed_by: str
    details: str
    previous_status: VersionStatus | None
    new_status: VersionStatus | None
    reference_version_id: str | None
    comment: str | None
    created_at: datetime


class ParameterValuesRequest(BaseModel):
    """Values to check against a version's parameter definitions."""

    values: dict[str, Any] = Field(default_factory=dict)


class ValidationIssueResponse(BaseModel):
    parameter: str
    message: str
    severity: str


class ParameterValidationResponse(BaseModel):
    valid: bool
    issues: list[ValidationIssueResponse]
    missing_required: list[str]
    unknown_parameters: list[str]
    validated_values: dict[str, Any]
