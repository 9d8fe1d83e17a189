"""Test fixtures — mock Supabase client and shared test data."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from prompt_studio.core.audit import VersionAuditLog
from prompt_studio.core.templates import TemplateRegistry
from prompt_studio.core.versions import VersionManager
from prompt_studio.db.client import SupabaseClient
from prompt_studio.db.models import PromptParameter


class MockSupabaseClient(SupabaseClient):
    """In-memory mock of the Supabase client for testing."""

    def __init__(self):
        self._tables: dict[str, list[dict[str, Any]]] = {
            "prompt_templates": [],
            "prompt_versions": [],
            "version_audit_log": [],
        }

    def insert(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        record = {
            "id": str(uuid4()),
            "created_at": datetime.now(timezone.utc).isoformat(),
            "updated_at": datetime.now(timezone.utc).isoformat(),
            **data,
        }
        self._tables.setdefault(table, []).append(record)
        return dict(record)

    def get(self, table: str, id: str) -> dict[str, Any] | None:
        for row in self._tables.get(table, []):
            if row["id"] == id:
                return dict(row)
        return None

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        ascending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        rows = self._tables.get(table, [])
        if filters:
            for key, value in filters.items():
                rows = [r for r in rows if r.get(key) == value]
        if order_by:
            rows = sorted(rows, key=lambda r: r.get(order_by, 0), reverse=not ascending)
        if limit:
            rows = rows[:limit]
        return [dict(r) for r in rows]

    def update(self, table: str, id: str, data: dict[str, Any]) -> dict[str, Any]:
        for row in self._tables.get(table, []):
            if row["id"] == id:
                row.update(data)
                row["updated_at"] = datetime.now(timezone.utc).isoformat()
                return dict(row)
        raise ValueError(f"Row {id} not found in {table}")

    def delete(self, table: str, id: str) -> None:
        self._tables[table] = [r for r in self._tables.get(table, []) if r["id"] != id]

    def delete_where(self, table: str, column: str, value: Any) -> None:
        self._tables[table] = [r for r in self._tables.get(table, []) if r.get(column) != value]

    def reset(self):
        for table in self._tables:
            self._tables[table] = []


@pytest.fixture
def mock_db() -> MockSupabaseClient:
    """Fresh mock database for each test."""
    return MockSupabaseClient()


@pytest.fixture
def audit(mock_db) -> VersionAuditLog:
    return VersionAuditLog(mock_db)


@pytest.fixture
def registry(mock_db) -> TemplateRegistry:
    return TemplateRegistry(mock_db)


@pytest.fixture
def manager(mock_db, audit) -> VersionManager:
    return VersionManager(mock_db, audit)


@pytest.fixture
def template(registry):
    """A template to hang versions off."""
    return registry.create_template(
        name="Support Reply",
        project_id="proj-1",
        description="Answers customer tickets",
        category="support",
        created_by="alice",
    )


@pytest.fixture
def sample_parameters() -> list[PromptParameter]:
    return [
        PromptParameter(name="customer", description="Customer name", required=True,
                        default_value="there"),
        PromptParameter(name="tone", default_value="friendly"),
    ]


@pytest.fixture
def draft(manager, template, sample_parameters):
    """A DRAFT version 1.0.0 of the sample template."""
    return manager.create_version(
        template_id=template.id,
        version_number="1.0.0",
        content="Hello {{customer}}.\nThanks for reaching out.",
        system_prompt="You are a support agent.",
        parameters=sample_parameters,
        author="alice",
    )


@pytest.fixture
def app(mock_db, audit, registry, manager):
    """FastAPI test app with mocked dependencies."""
    from prompt_studio.core.audit import get_audit_log
    from prompt_studio.core.templates import get_template_registry
    from prompt_studio.core.versions import get_version_manager
    from prompt_studio.db.client import get_supabase_client
    from prompt_studio.main import app as _app

    _app.dependency_overrides[get_template_registry] = lambda: registry
    _app.dependency_overrides[get_version_manager] = lambda: manager
    _app.dependency_overrides[get_audit_log] = lambda: audit
    _app.dependency_overrides[get_supabase_client] = lambda: mock_db

    yield _app

    _app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """HTTP test client."""
    return TestClient(app)
