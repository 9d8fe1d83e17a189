"""Database models / type definitions.

These mirror the Supabase tables (prompt_templates, prompt_versions,
version_audit_log). Version parameters live inside the version row as a
JSON list.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, PrivateAttr


class VersionStatus(str, Enum):
    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"
    REJECTED = "REJECTED"


class ParameterType(str, Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    ARRAY = "ARRAY"
    OBJECT = "OBJECT"


class AuditAction(str, Enum):
    CREATED = "CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    CONTENT_UPDATED = "CONTENT_UPDATED"
    PARAMETERS_UPDATED = "PARAMETERS_UPDATED"
    ROLLBACK = "ROLLBACK"
    BRANCHED = "BRANCHED"


class PromptParameter(BaseModel):
    """A named input slot of a prompt version.

    ``id`` is None until the parameter has been persisted; ``key`` gives a
    stable handle either way.
    """

    id: str | None = None
    name: str
    description: str = ""
    parameter_type: ParameterType = ParameterType.STRING
    default_value: str | None = None
    required: bool = False
    validation_pattern: str | None = None

    _temp_key: str = PrivateAttr(default_factory=lambda: f"tmp-{uuid4().hex[:12]}")

    @property
    def key(self) -> str:
        return self.id or self._temp_key


class PromptTemplate(BaseModel):
    """Row from the prompt_templates table, plus read-time counters."""

    id: str
    name: str
    description: str = ""
    project_id: str
    category: str = ""
    created_by: str = "system"
    created_at: datetime
    updated_at: datetime
    version_count: int = 0
    has_published_version: bool = False


class PromptVersion(BaseModel):
    """Row from the prompt_versions table."""

    id: str
    template_id: str
    template_name: str = ""
    version_number: str
    content: str
    system_prompt: str | None = None
    created_by: str = "system"
    created_at: datetime
    updated_at: datetime
    status: VersionStatus = VersionStatus.DRAFT
    parent_version_id: str | None = None
    parameters: list[PromptParameter] = Field(default_factory=list)


class VersionAuditEntry(BaseModel):
    """Row from the version_audit_log table."""

    id: str
    version_id: str
    action: AuditAction
    performed_by: str
    details: str = ""
    previous_status: VersionStatus | None = None
    new_status: VersionStatus | None = None
    reference_version_id: str | None = None
    comment: str | None = None
    created_at: datetime
