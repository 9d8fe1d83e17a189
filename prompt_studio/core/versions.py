"""Version manager: create, branch, review, publish, compare and roll back prompt versions."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any
from uuid import uuid4

import structlog

from prompt_studio.core.audit import VersionAuditLog, get_audit_log
from prompt_studio.core.differ import VersionComparisonResult, compare_versions
from prompt_studio.core.errors import ValidationError
from prompt_studio.core.lifecycle import can_transition, transition, transition_map
from prompt_studio.core.lineage import children, lineage_chain
from prompt_studio.core.pagination import paginate
from prompt_studio.core.validation import validate_version_fields
from prompt_studio.db.client import SupabaseClient, get_supabase_client
from prompt_studio.db.models import (
    AuditAction,
    PromptParameter,
    PromptVersion,
    VersionAuditEntry,
    VersionStatus,
)

logger = structlog.get_logger()

TEMPLATES_TABLE = "prompt_templates"
VERSIONS_TABLE = "prompt_versions"

SEMVER_PATTERN = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")
EDITABLE_FIELDS = {"version_number", "content", "system_prompt", "parameters"}


def natural_key(version_number: str) -> list[tuple[int, Any]]:
    """Sort key comparing digit runs numerically: "1.10" sorts after "1.9"."""
    return [
        (0, int(chunk)) if chunk.isdigit() else (1, chunk.lower())
        for chunk in re.findall(r"\d+|\D+", version_number)
    ]


def next_version_number(existing: list[str]) -> str:
    """Pick the number for a version derived from the template's current ones.

    Semantic versions bump minor, plain integers bump by one, anything else
    gets a ``.1`` suffix. Collisions are stepped past.
    """
    if not existing:
        return "1.0.0"

    highest = max(existing, key=natural_key)
    if match := SEMVER_PATTERN.match(highest):
        major, minor = int(match.group(1)), int(match.group(2))
        candidate = f"{major}.{minor + 1}.0"
    elif highest.isdigit():
        candidate = str(int(highest) + 1)
    else:
        candidate = f"{highest}.1"

    taken = set(existing)
    while candidate in taken:
        candidate = f"{candidate}.1"
    return candidate


def _persisted(params: list[PromptParameter], fresh_ids: bool = False) -> list[dict[str, Any]]:
    """Serialise parameters for storage, assigning ids to unsaved ones."""
    rows = []
    for param in params:
        row = param.model_dump(mode="json")
        if fresh_ids or not row.get("id"):
            row["id"] = str(uuid4())
        rows.append(row)
    return rows


class VersionManager:
    """Owns prompt_versions rows and drives them through the status lifecycle."""

    def __init__(self, db: SupabaseClient, audit: VersionAuditLog) -> None:
        self.db = db
        self.audit = audit

    # --- Reads ---

    def get_version(self, version_id: str) -> PromptVersion | None:
        row = self.db.get(VERSIONS_TABLE, version_id)
        return PromptVersion(**row) if row else None

    def template_versions(self, template_id: str) -> list[PromptVersion]:
        rows = self.db.select(VERSIONS_TABLE, filters={"template_id": template_id})
        return [PromptVersion(**r) for r in rows]

    def list_by_template(
        self,
        template_id: str,
        page: int = 0,
        size: int | None = None,
    ) -> dict[str, Any] | None:
        """Versions of a template, highest version number first. None if the template is missing."""
        if not self.db.get(TEMPLATES_TABLE, template_id):
            return None
        versions = self.template_versions(template_id)
        versions.sort(key=lambda v: natural_key(v.version_number), reverse=True)
        return paginate(versions, page, size)

    def list_all(self, page: int = 0, size: int | None = None) -> dict[str, Any]:
        rows = self.db.select(VERSIONS_TABLE, order_by="created_at", ascending=False)
        return paginate([PromptVersion(**r) for r in rows], page, size)

    # --- Writes ---

    def _check_number_free(self, template_id: str, version_number: str) -> None:
        existing = self.db.select(
            VERSIONS_TABLE,
            filters={"template_id": template_id, "version_number": version_number},
        )
        if existing:
            raise ValueError(
                f"Version number already exists for this template: {version_number}"
            )

    def _insert(
        self,
        template: dict[str, Any],
        version_number: str,
        content: str,
        system_prompt: str | None,
        parent_version_id: str | None,
        parameters: list[PromptParameter],
        author: str,
        fresh_parameter_ids: bool = False,
    ) -> PromptVersion:
        row = self.db.insert(
            VERSIONS_TABLE,
            {
                "template_id": template["id"],
                "template_name": template["name"],
                "version_number": version_number,
                "content": content,
                "system_prompt": system_prompt,
                "created_by": author,
                "status": VersionStatus.DRAFT.value,
                "parent_version_id": parent_version_id,
                "parameters": _persisted(parameters, fresh_ids=fresh_parameter_ids),
            },
        )
        return PromptVersion(**row)

    def create_version(
        self,
        template_id: str,
        version_number: str,
        content: str,
        system_prompt: str | None = None,
        parent_version_id: str | None = None,
        parameters: list[PromptParameter] | None = None,
        author: str = "system",
    ) -> PromptVersion:
        """Create a DRAFT version of a template.

        The parent, if given, must be a version of the same template.
        """
        parameters = parameters or []
        validate_version_fields(template_id, version_number, content, parameters)

        template = self.db.get(TEMPLATES_TABLE, template_id)
        if not template:
            raise ValidationError(
                "Version validation failed", {"template_id": "Template not found"}
            )

        parent = None
        if parent_version_id:
            parent = self.get_version(parent_version_id)
            if parent is None:
                raise ValidationError(
                    "Version validation failed",
                    {"parent_version_id": "Parent version not found"},
                )
            if parent.template_id != template_id:
                raise ValidationError(
                    "Version validation failed",
                    {"parent_version_id": "Parent version must belong to the same template"},
                )

        self._check_number_free(template_id, version_number)

        version = self._insert(
            template, version_number, content, system_prompt,
            parent_version_id, parameters, author,
        )
        details = "Version created"
        if parent:
            details += f" from parent {parent.version_number}"
        self.audit.record(
            version.id, AuditAction.CREATED, author, details,
            new_status=VersionStatus.DRAFT, reference_version_id=parent_version_id,
        )
        logger.info(
            "version.created",
            version_id=version.id,
            template_id=template_id,
            version_number=version_number,
        )
        return version

    def update_version(
        self,
        version_id: str,
        author: str = "system",
        **changes: Any,
    ) -> PromptVersion | None:
        """Edit a DRAFT version's number, content, system prompt or parameters."""
        version = self.get_version(version_id)
        if version is None:
            return None
        if version.status != VersionStatus.DRAFT:
            raise ValueError(
                f"Only DRAFT versions can be edited; version is {version.status.value}"
            )

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        merged = version.model_copy(update=changes)
        validate_version_fields(
            merged.template_id, merged.version_number, merged.content, merged.parameters
        )
        if merged.version_number != version.version_number:
            self._check_number_free(version.template_id, merged.version_number)

        data: dict[str, Any] = {
            key: value for key, value in changes.items() if key != "parameters"
        }
        if "parameters" in changes:
            data["parameters"] = _persisted(merged.parameters)
        row = self.db.update(VERSIONS_TABLE, version_id, data)
        updated = PromptVersion(**row)

        content_changed = (
            updated.content != version.content
            or updated.system_prompt != version.system_prompt
            or updated.version_number != version.version_number
        )
        if content_changed:
            self.audit.record(version_id, AuditAction.CONTENT_UPDATED, author, "Content updated")
        if "parameters" in changes:
            self.audit.record(
                version_id, AuditAction.PARAMETERS_UPDATED, author,
                f"{len(updated.parameters)} parameter(s) defined",
            )
        logger.info("version.updated", version_id=version_id, fields=sorted(changes))
        return updated

    def create_branch(
        self,
        parent_id: str,
        version_number: str,
        content: str | None = None,
        system_prompt: str | None = None,
        parameters: list[PromptParameter] | None = None,
        author: str = "system",
    ) -> PromptVersion | None:
        """Start a new DRAFT line from an existing version.

        Content, system prompt and parameters default to the parent's.
        """
        parent = self.get_version(parent_id)
        if parent is None:
            return None

        content = content if content is not None else parent.content
        system_prompt = system_prompt if system_prompt is not None else parent.system_prompt
        copied = parameters is None
        parameters = parameters if parameters is not None else parent.parameters
        validate_version_fields(parent.template_id, version_number, content, parameters)

        template = self.db.get(TEMPLATES_TABLE, parent.template_id)
        if not template:
            raise ValidationError(
                "Version validation failed", {"template_id": "Template not found"}
            )
        self._check_number_free(parent.template_id, version_number)

        branch = self._insert(
            template, version_number, content, system_prompt,
            parent.id, parameters, author, fresh_parameter_ids=copied,
        )
        self.audit.record(
            branch.id, AuditAction.BRANCHED, author,
            f"Created as branch from version {parent.version_number}",
            new_status=VersionStatus.DRAFT, reference_version_id=parent.id,
        )
        logger.info("version.branched", version_id=branch.id, parent_id=parent.id)
        return branch

    def _set_status(
        self,
        version: PromptVersion,
        status: VersionStatus,
        author: str,
        details: str,
        comment: str | None = None,
    ) -> PromptVersion:
        row = self.db.update(VERSIONS_TABLE, version.id, {"status": status.value})
        self.audit.record(
            version.id, AuditAction.STATUS_CHANGED, author, details,
            previous_status=version.status, new_status=status, comment=comment,
        )
        logger.info(
            "version.status_changed",
            version_id=version.id,
            previous=version.status.value,
            new=status.value,
        )
        return PromptVersion(**row)

    def update_status(
        self,
        version_id: str,
        status: VersionStatus,
        comment: str | None = None,
        author: str = "system",
    ) -> PromptVersion | None:
        """Move a version to a new status.

        Publishing archives the template's previously published versions.
        Raises InvalidTransition for moves the lifecycle does not allow.
        """
        version = self.get_version(version_id)
        if version is None:
            return None

        new_status = transition(version.status, status)

        if new_status == VersionStatus.PUBLISHED:
            for other in self.template_versions(version.template_id):
                if other.id != version.id and other.status == VersionStatus.PUBLISHED:
                    self._set_status(
                        other, VersionStatus.ARCHIVED, author,
                        f"Archived because version {version.version_number} was published",
                    )

        return self._set_status(version, new_status, author, "Status changed", comment)

    def status_transitions(self, version_id: str) -> dict[str, list[str]] | None:
        version = self.get_version(version_id)
        return transition_map(version.status) if version else None

    def can_transition_to(self, version_id: str, status: VersionStatus) -> bool | None:
        version = self.get_version(version_id)
        return can_transition(version.status, status) if version else None

    def compare(self, source_id: str, target_id: str) -> VersionComparisonResult | None:
        """Compare two versions of the same template. None if either is missing."""
        source = self.get_version(source_id)
        target = self.get_version(target_id)
        if source is None or target is None:
            return None
        if source.template_id != target.template_id:
            raise ValidationError(
                "Cannot compare versions from different templates",
                {"target_id": "Version belongs to a different template"},
            )
        return compare_versions(source, target)

    def rollback(
        self,
        version_id: str,
        comment: str | None = None,
        author: str = "system",
    ) -> PromptVersion | None:
        """Restore an earlier version as a new DRAFT that descends from it."""
        source = self.get_version(version_id)
        if source is None:
            return None
        if source.status == VersionStatus.ARCHIVED:
            raise ValueError("Cannot rollback to an archived version")

        template = self.db.get(TEMPLATES_TABLE, source.template_id)
        if not template:
            raise ValidationError(
                "Version validation failed", {"template_id": "Template not found"}
            )

        existing = [v.version_number for v in self.template_versions(source.template_id)]
        version = self._insert(
            template, next_version_number(existing), source.content, source.system_prompt,
            source.id, source.parameters, author, fresh_parameter_ids=True,
        )
        self.audit.record(
            version.id, AuditAction.ROLLBACK, author,
            f"Rollback to version {source.version_number}",
            new_status=VersionStatus.DRAFT, reference_version_id=source.id, comment=comment,
        )
        logger.info("version.rolled_back", version_id=version.id, source_id=source.id)
        return version

    def get_lineage(self, version_id: str) -> dict[str, Any] | None:
        """Ancestors (root first, ending with the version) and direct branches."""
        version = self.get_version(version_id)
        if version is None:
            return None
        ancestors = lineage_chain(version_id, self.get_version)
        return {
            "version": version,
            "ancestors": ancestors,
            "children": children(version_id, self.template_versions(version.template_id)),
        }

    def get_audit_trail(self, version_id: str) -> list[VersionAuditEntry] | None:
        if self.get_version(version_id) is None:
            return None
        return self.audit.trail(version_id)


@lru_cache
def get_version_manager() -> VersionManager:
    """Get cached version manager instance."""
    return VersionManager(get_supabase_client(), get_audit_log())
