"""Template registry: CRUD and search for prompt templates."""

from __future__ import annotations

from dataclasses import dataclass
from difflib import SequenceMatcher
from functools import lru_cache
from typing import Any

import structlog

from prompt_studio.core.errors import ValidationError
from prompt_studio.core.pagination import paginate
from prompt_studio.db.client import SupabaseClient, get_supabase_client
from prompt_studio.db.models import PromptTemplate, VersionStatus

logger = structlog.get_logger()

TEMPLATES_TABLE = "prompt_templates"
VERSIONS_TABLE = "prompt_versions"
AUDIT_TABLE = "version_audit_log"

FUZZY_THRESHOLD = 0.6


@dataclass
class TemplateSearchCriteria:
    search_text: str | None = None
    project_id: str | None = None
    category: str | None = None
    created_by: str | None = None
    has_published_version: bool | None = None
    min_version_count: int | None = None
    use_exact_match: bool = False
    use_fuzzy_match: bool = False


class TemplateRegistry:
    """Manages prompt templates. Version counters are derived at read time."""

    def __init__(self, db: SupabaseClient) -> None:
        self.db = db

    def _with_counters(self, row: dict[str, Any]) -> PromptTemplate:
        versions = self.db.select(VERSIONS_TABLE, filters={"template_id": row["id"]})
        return PromptTemplate(
            **row,
            version_count=len(versions),
            has_published_version=any(
                v.get("status") == VersionStatus.PUBLISHED.value for v in versions
            ),
        )

    def name_exists(self, name: str, project_id: str | None = None) -> bool:
        filters: dict[str, Any] = {"name": name}
        if project_id:
            filters["project_id"] = project_id
        return bool(self.db.select(TEMPLATES_TABLE, filters=filters))

    def create_template(
        self,
        name: str,
        project_id: str,
        description: str = "",
        category: str = "",
        created_by: str = "system",
    ) -> PromptTemplate:
        """Create a template. Names are unique within a project."""
        if not name or not name.strip():
            raise ValidationError(
                "Template validation failed", {"name": "Template name is required"}
            )
        if self.name_exists(name, project_id):
            raise ValueError(f"Template name already exists in project: {name}")

        row = self.db.insert(
            TEMPLATES_TABLE,
            {
                "name": name,
                "description": description,
                "project_id": project_id,
                "category": category,
                "created_by": created_by,
            },
        )
        logger.info("template.created", template_id=row["id"], name=name, project_id=project_id)
        return self._with_counters(row)

    def get_template(self, template_id: str) -> PromptTemplate | None:
        row = self.db.get(TEMPLATES_TABLE, template_id)
        return self._with_counters(row) if row else None

    def _all_templates(self) -> list[PromptTemplate]:
        rows = self.db.select(TEMPLATES_TABLE)
        templates = [self._with_counters(r) for r in rows]
        templates.sort(key=lambda t: t.updated_at, reverse=True)
        return templates

    def list_templates(self, page: int = 0, size: int | None = None) -> dict[str, Any]:
        return paginate(self._all_templates(), page, size)

    def _matches_text(self, template: PromptTemplate, criteria: TemplateSearchCriteria) -> bool:
        text = criteria.search_text or ""
        if criteria.use_exact_match:
            return template.name == text

        needle = text.lower()
        if needle in template.name.lower() or needle in template.description.lower():
            return True
        if criteria.use_fuzzy_match:
            ratio = SequenceMatcher(None, needle, template.name.lower()).ratio()
            return ratio >= FUZZY_THRESHOLD
        return False

    def search_templates(
        self,
        criteria: TemplateSearchCriteria,
        page: int = 0,
        size: int | None = None,
    ) -> dict[str, Any]:
        """Filter templates by criteria and return one page of matches."""
        results = self._all_templates()

        if criteria.project_id:
            results = [t for t in results if t.project_id == criteria.project_id]
        if criteria.category:
            results = [t for t in results if t.category == criteria.category]
        if criteria.created_by:
            results = [t for t in results if t.created_by == criteria.created_by]
        if criteria.has_published_version is not None:
            results = [
                t for t in results if t.has_published_version == criteria.has_published_version
            ]
        if criteria.min_version_count is not None:
            results = [t for t in results if t.version_count >= criteria.min_version_count]
        if criteria.search_text:
            results = [t for t in results if self._matches_text(t, criteria)]

        return paginate(results, page, size)

    def update_template(self, template_id: str, **fields: Any) -> PromptTemplate | None:
        """Update template fields.

        A rename or a move that would clash with another template in the
        target project is refused.
        """
        current = self.db.get(TEMPLATES_TABLE, template_id)
        if not current:
            return None

        new_name = fields.get("name")
        if new_name is not None and not new_name.strip():
            raise ValidationError(
                "Template validation failed", {"name": "Template name is required"}
            )

        name = new_name or current["name"]
        project_id = fields.get("project_id") or current["project_id"]
        if name != current["name"] or project_id != current["project_id"]:
            clashes = self.db.select(
                TEMPLATES_TABLE, filters={"name": name, "project_id": project_id}
            )
            if any(row["id"] != template_id for row in clashes):
                raise ValueError(f"Template name already exists in project: {name}")

        row = self.db.update(TEMPLATES_TABLE, template_id, fields)
        logger.info("template.updated", template_id=template_id, fields=list(fields.keys()))
        return self._with_counters(row)

    def delete_template(self, template_id: str) -> bool:
        """Delete a template together with its versions and their audit entries."""
        if not self.db.get(TEMPLATES_TABLE, template_id):
            return False

        for version in self.db.select(VERSIONS_TABLE, filters={"template_id": template_id}):
            self.db.delete_where(AUDIT_TABLE, "version_id", version["id"])
        self.db.delete_where(VERSIONS_TABLE, "template_id", template_id)
        self.db.delete(TEMPLATES_TABLE, template_id)
        logger.info("template.deleted", template_id=template_id)
        return True

    def list_categories(self) -> list[str]:
        rows = self.db.select(TEMPLATES_TABLE)
        return sorted({r["category"] for r in rows if r.get("category")})


@lru_cache
def get_template_registry() -> TemplateRegistry:
    """Get cached registry instance."""
    return TemplateRegistry(get_supabase_client())
