"""Tests for the template registry."""

from __future__ import annotations

import pytest

from prompt_studio.core.errors import ValidationError
from prompt_studio.core.templates import TemplateSearchCriteria
from prompt_studio.db.models import VersionStatus


class TestCreateTemplate:
    def test_create(self, registry):
        template = registry.create_template("Greeting", "proj-1", category="general")
        assert template.name == "Greeting"
        assert template.version_count == 0
        assert not template.has_published_version

    def test_duplicate_name_in_project(self, registry, template):
        with pytest.raises(ValueError, match="already exists"):
            registry.create_template("Support Reply", "proj-1")

    def test_same_name_other_project(self, registry, template):
        other = registry.create_template("Support Reply", "proj-2")
        assert other.project_id == "proj-2"

    def test_blank_name(self, registry):
        with pytest.raises(ValueError):
            registry.create_template("   ", "proj-1")

    def test_name_exists(self, registry, template):
        assert registry.name_exists("Support Reply", "proj-1")
        assert registry.name_exists("Support Reply")
        assert not registry.name_exists("Support Reply", "proj-9")


class TestReadTemplates:
    def test_get_missing(self, registry):
        assert registry.get_template("nope") is None

    def test_counters_follow_versions(self, registry, manager, template, draft):
        manager.update_status(draft.id, VersionStatus.REVIEW)
        manager.update_status(draft.id, VersionStatus.PUBLISHED)
        loaded = registry.get_template(template.id)
        assert loaded.version_count == 1
        assert loaded.has_published_version

    def test_list_paginates(self, registry):
        for i in range(3):
            registry.create_template(f"T{i}", "proj-1")
        page = registry.list_templates(0, 2)
        assert len(page["content"]) == 2
        assert page["total_elements"] == 3

    def test_categories(self, registry, template):
        registry.create_template("Other", "proj-1", category="billing")
        registry.create_template("Uncategorised", "proj-1")
        assert registry.list_categories() == ["billing", "support"]


class TestSearchTemplates:
    @pytest.fixture(autouse=True)
    def _seed(self, registry):
        registry.create_template("Refund Request", "proj-1", description="Money back", category="billing")
        registry.create_template("Welcome Email", "proj-1", category="onboarding")
        registry.create_template("Refund Policy", "proj-2", category="billing")

    def _names(self, page):
        return sorted(t.name for t in page["content"])

    def test_substring_in_name_or_description(self, registry):
        result = registry.search_templates(TemplateSearchCriteria(search_text="refund"))
        assert self._names(result) == ["Refund Policy", "Refund Request"]
        result = registry.search_templates(TemplateSearchCriteria(search_text="money"))
        assert self._names(result) == ["Refund Request"]

    def test_exact_match(self, registry):
        criteria = TemplateSearchCriteria(search_text="Refund", use_exact_match=True)
        assert registry.search_templates(criteria)["content"] == []
        criteria.search_text = "Refund Policy"
        assert self._names(registry.search_templates(criteria)) == ["Refund Policy"]

    def test_fuzzy_match(self, registry):
        criteria = TemplateSearchCriteria(search_text="welcom emial", use_fuzzy_match=True)
        assert self._names(registry.search_templates(criteria)) == ["Welcome Email"]

    def test_filters_combine(self, registry):
        criteria = TemplateSearchCriteria(category="billing", project_id="proj-2")
        assert self._names(registry.search_templates(criteria)) == ["Refund Policy"]

    def test_min_version_count(self, registry):
        criteria = TemplateSearchCriteria(min_version_count=1)
        assert registry.search_templates(criteria)["content"] == []


class TestUpdateDelete:
    def test_update(self, registry, template):
        updated = registry.update_template(template.id, description="New text")
        assert updated.description == "New text"

    def test_update_missing(self, registry):
        assert registry.update_template("nope", name="x") is None

    def test_rename_collision(self, registry, template):
        other = registry.create_template("Other", "proj-1")
        with pytest.raises(ValueError):
            registry.update_template(other.id, name="Support Reply")

    def test_move_collision(self, registry):
        moving = registry.create_template("Greeting", "proj-1")
        registry.create_template("Greeting", "proj-2")
        with pytest.raises(ValueError, match="already exists"):
            registry.update_template(moving.id, project_id="proj-2")
        criteria = TemplateSearchCriteria(project_id="proj-2", search_text="Greeting")
        assert registry.search_templates(criteria)["total_elements"] == 1
        assert registry.get_template(moving.id).project_id == "proj-1"

    def test_move_to_free_project(self, registry, template):
        moved = registry.update_template(template.id, project_id="proj-3")
        assert moved.project_id == "proj-3"
        assert moved.name == "Support Reply"

    def test_blank_rename_is_validation_error(self, registry, template):
        with pytest.raises(ValidationError) as exc:
            registry.update_template(template.id, name="   ")
        assert "name" in exc.value.errors
        assert registry.get_template(template.id).name == "Support Reply"

    def test_delete_cascades(self, registry, mock_db, template, draft):
        assert registry.delete_template(template.id)
        assert registry.get_template(template.id) is None
        assert mock_db.select("prompt_versions") == []
        assert mock_db.select("version_audit_log") == []

    def test_delete_missing(self, registry):
        assert not registry.delete_template("nope")
