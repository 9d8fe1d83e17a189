"""API client for the Prompt Studio REST API."""

from __future__ import annotations

from typing import Any

import httpx


class StudioClient:
    """HTTP client wrapping the template and version endpoints."""

    def __init__(self, base_url: str = "http://localhost:8400", auth_token: str | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        self._client = httpx.Client(base_url=f"{self.base_url}/api/v1", headers=headers, timeout=30)

    def _handle(self, resp: httpx.Response) -> Any:
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail", resp.text)
            except ValueError:
                detail = resp.text
            raise RuntimeError(f"API error ({resp.status_code}): {detail}")
        if resp.status_code == 204:
            return None
        return resp.json()

    # --- Templates ---

    def list_templates(self, page: int = 0, size: int = 10) -> dict:
        return self._handle(self._client.get("/templates", params={"page": page, "size": size}))

    def search_templates(self, criteria: dict, page: int = 0, size: int = 10) -> dict:
        return self._handle(self._client.post(
            "/templates/search", json=criteria, params={"page": page, "size": size}
        ))

    def create_template(self, data: dict) -> dict:
        return self._handle(self._client.post("/templates", json=data))

    def get_template(self, template_id: str) -> dict:
        return self._handle(self._client.get(f"/templates/{template_id}"))

    def delete_template(self, template_id: str) -> None:
        self._handle(self._client.delete(f"/templates/{template_id}"))

    def list_categories(self) -> list[str]:
        return self._handle(self._client.get("/templates/categories"))

    def template_versions(self, template_id: str, page: int = 0, size: int = 10) -> dict:
        return self._handle(self._client.get(
            f"/templates/{template_id}/versions", params={"page": page, "size": size}
        ))

    # --- Versions ---

    def create_version(self, data: dict) -> dict:
        return self._handle(self._client.post("/versions", json=data))

    def get_version(self, version_id: str) -> dict:
        return self._handle(self._client.get(f"/versions/{version_id}"))

    def branch_version(self, version_id: str, data: dict) -> dict:
        return self._handle(self._client.post(f"/versions/{version_id}/branch", json=data))

    def update_status(
        self, version_id: str, status: str, comment: str | None = None, author: str = "cli"
    ) -> dict:
        return self._handle(self._client.post(
            f"/versions/{version_id}/status",
            json={"status": status, "comment": comment, "author": author},
        ))

    def status_transitions(self, version_id: str) -> dict[str, list[str]]:
        return self._handle(self._client.get(f"/versions/{version_id}/status-transitions"))

    def compare(self, source_id: str, target_id: str) -> dict:
        return self._handle(self._client.get(
            "/versions/compare", params={"source_id": source_id, "target_id": target_id}
        ))

    def rollback(self, version_id: str, comment: str | None = None, author: str = "cli") -> dict:
        return self._handle(self._client.post(
            f"/versions/{version_id}/rollback",
            json={"comment": comment, "author": author},
        ))

    def lineage(self, version_id: str) -> dict:
        return self._handle(self._client.get(f"/versions/{version_id}/lineage"))

    def audit_trail(self, version_id: str) -> list[dict]:
        return self._handle(self._client.get(f"/versions/{version_id}/audit-trail"))

    def validate_parameters(self, version_id: str, values: dict[str, Any]) -> dict:
        return self._handle(self._client.post(
            f"/versions/{version_id}/validate-parameters", json={"values": values}
        ))
