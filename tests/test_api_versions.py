"""Tests for the version API endpoints."""

from __future__ import annotations

import pytest


@pytest.fixture
def version(client, template):
    resp = client.post("/api/v1/versions", json={
        "template_id": template.id,
        "version_number": "1.0.0",
        "content": "Hello {{name}}.\nHow can I help?",
        "system_prompt": "Be kind.",
        "parameters": [{"name": "name", "required": True, "default_value": "friend"}],
        "author": "alice",
    })
    assert resp.status_code == 201
    return resp.json()


def _status(client, version_id, status, **extra):
    return client.post(f"/api/v1/versions/{version_id}/status", json={"status": status, **extra})


def _publish(client, version_id):
    _status(client, version_id, "REVIEW")
    return _status(client, version_id, "PUBLISHED")


class TestCreateAndRead:
    def test_create(self, version):
        assert version["status"] == "DRAFT"
        assert version["template_name"] == "Support Reply"
        assert version["parameters"][0]["id"]

    def test_create_validation_errors(self, client, template):
        resp = client.post("/api/v1/versions", json={
            "template_id": template.id,
            "version_number": "1.0.0",
            "content": " ",
            "parameters": [{"name": "x", "required": True}],
        })
        assert resp.status_code == 422
        detail = resp.json()["detail"]
        assert detail["message"] == "Version validation failed"
        assert set(detail["errors"]) == {"content", "parameters[0].default_value"}

    def test_create_duplicate_number(self, client, template, version):
        resp = client.post("/api/v1/versions", json={
            "template_id": template.id, "version_number": "1.0.0", "content": "x",
        })
        assert resp.status_code == 409

    def test_get(self, client, version):
        resp = client.get(f"/api/v1/versions/{version['id']}")
        assert resp.status_code == 200
        assert resp.json()["content"] == version["content"]

    def test_get_missing(self, client):
        assert client.get("/api/v1/versions/nope").status_code == 404

    def test_list_all(self, client, version):
        data = client.get("/api/v1/versions").json()
        assert data["total_elements"] == 1


class TestEdit:
    def test_update_draft(self, client, version):
        resp = client.put(f"/api/v1/versions/{version['id']}", json={"content": "New body"})
        assert resp.status_code == 200
        assert resp.json()["content"] == "New body"
        assert resp.json()["system_prompt"] == "Be kind."

    def test_update_parameters(self, client, version):
        resp = client.put(
            f"/api/v1/versions/{version['id']}",
            json={"parameters": [{"name": "topic", "parameter_type": "STRING"}]},
        )
        assert [p["name"] for p in resp.json()["parameters"]] == ["topic"]

    def test_update_non_draft(self, client, version):
        _status(client, version["id"], "REVIEW")
        resp = client.put(f"/api/v1/versions/{version['id']}", json={"content": "x"})
        assert resp.status_code == 409

    def test_update_invalid(self, client, version):
        resp = client.put(f"/api/v1/versions/{version['id']}", json={"version_number": ""})
        assert resp.status_code == 422

    def test_update_missing(self, client):
        assert client.put("/api/v1/versions/nope", json={"content": "x"}).status_code == 404


class TestStatusEndpoints:
    def test_transition(self, client, version):
        resp = _status(client, version["id"], "REVIEW", comment="please review")
        assert resp.status_code == 200
        assert resp.json()["status"] == "REVIEW"

    def test_invalid_transition(self, client, version):
        resp = _status(client, version["id"], "PUBLISHED")
        assert resp.status_code == 409
        detail = resp.json()["detail"]
        assert detail["current"] == "DRAFT"
        assert detail["target"] == "PUBLISHED"

    def test_unknown_status(self, client, version):
        assert _status(client, version["id"], "LIVE").status_code == 422

    def test_status_missing(self, client):
        assert _status(client, "nope", "REVIEW").status_code == 404

    def test_publish_archives_previous(self, client, template, version):
        _publish(client, version["id"])
        second = client.post("/api/v1/versions", json={
            "template_id": template.id, "version_number": "1.1.0", "content": "Second",
        }).json()
        _publish(client, second["id"])
        assert client.get(f"/api/v1/versions/{version['id']}").json()["status"] == "ARCHIVED"

    def test_status_transitions(self, client, version):
        resp = client.get(f"/api/v1/versions/{version['id']}/status-transitions")
        assert resp.json() == {"DRAFT": ["REVIEW"]}

    def test_can_transition(self, client, version):
        url = f"/api/v1/versions/{version['id']}/can-transition"
        assert client.get(url, params={"status": "REVIEW"}).json() is True
        assert client.get(url, params={"status": "PUBLISHED"}).json() is False

    def test_can_transition_missing(self, client):
        resp = client.get("/api/v1/versions/nope/can-transition", params={"status": "REVIEW"})
        assert resp.status_code == 404


class TestBranchAndRollback:
    def test_branch(self, client, version):
        resp = client.post(
            f"/api/v1/versions/{version['id']}/branch", json={"version_number": "1.0.1"}
        )
        assert resp.status_code == 201
        branch = resp.json()
        assert branch["parent_version_id"] == version["id"]
        assert branch["content"] == version["content"]

    def test_branch_with_empty_parameters_drops_them(self, client, version):
        resp = client.post(
            f"/api/v1/versions/{version['id']}/branch",
            json={"version_number": "2.0.0", "parameters": []},
        )
        assert resp.status_code == 201
        assert resp.json()["parameters"] == []

    def test_branch_missing_parent(self, client):
        resp = client.post("/api/v1/versions/nope/branch", json={"version_number": "2.0.0"})
        assert resp.status_code == 404

    def test_rollback(self, client, version):
        _publish(client, version["id"])
        resp = client.post(f"/api/v1/versions/{version['id']}/rollback", json={"comment": "undo"})
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "DRAFT"
        assert data["parent_version_id"] == version["id"]
        assert data["version_number"] == "1.1.0"

    def test_rollback_archived(self, client, version):
        _publish(client, version["id"])
        _status(client, version["id"], "ARCHIVED")
        resp = client.post(f"/api/v1/versions/{version['id']}/rollback", json={})
        assert resp.status_code == 409


class TestCompare:
    def test_compare(self, client, template, version):
        other = client.post("/api/v1/versions", json={
            "template_id": template.id,
            "version_number": "1.1.0",
            "content": "Hello {{name}}.\nWhat do you need?",
            "system_prompt": "Be kind.",
            "parameters": [
                {"name": "name", "required": True, "default_value": "friend"},
                {"name": "topic"},
            ],
        }).json()
        resp = client.get(
            "/api/v1/versions/compare",
            params={"source_id": version["id"], "target_id": other["id"]},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert [d["type"] for d in data["content_diff"]] == ["UNCHANGED", "REMOVED", "ADDED"]
        assert data["content_diff"][2]["target_line"] == 2
        assert data["content_diff"][2]["source_line"] is None
        assert all(d["type"] == "UNCHANGED" for d in data["system_prompt_diff"])
        assert [p["name"] for p in data["parameter_changes"]["added"]] == ["topic"]
        assert data["identical"] is False
        assert data["source_version_number"] == "1.0.0"

    def test_compare_self(self, client, version):
        resp = client.get(
            "/api/v1/versions/compare",
            params={"source_id": version["id"], "target_id": version["id"]},
        )
        assert resp.json()["identical"] is True
        assert resp.json()["summary"] == "No changes"

    def test_compare_across_templates(self, client, registry, version):
        other_template = registry.create_template("Other", "proj-1")
        foreign = client.post("/api/v1/versions", json={
            "template_id": other_template.id, "version_number": "1.0.0", "content": "x",
        }).json()
        resp = client.get(
            "/api/v1/versions/compare",
            params={"source_id": version["id"], "target_id": foreign["id"]},
        )
        assert resp.status_code == 422

    def test_compare_missing(self, client, version):
        resp = client.get(
            "/api/v1/versions/compare", params={"source_id": version["id"], "target_id": "nope"}
        )
        assert resp.status_code == 404


class TestLineageAndAudit:
    def test_lineage(self, client, version):
        child = client.post(
            f"/api/v1/versions/{version['id']}/branch", json={"version_number": "1.1.0"}
        ).json()
        resp = client.get(f"/api/v1/versions/{child['id']}/lineage")
        assert resp.status_code == 200
        data = resp.json()
        assert [v["id"] for v in data["ancestors"]] == [version["id"], child["id"]]
        assert data["children"] == []

        root = client.get(f"/api/v1/versions/{version['id']}/lineage").json()
        assert [v["id"] for v in root["children"]] == [child["id"]]

    def test_lineage_cycle(self, client, mock_db, template, version):
        child = client.post(
            f"/api/v1/versions/{version['id']}/branch", json={"version_number": "1.1.0"}
        ).json()
        mock_db.update("prompt_versions", version["id"], {"parent_version_id": child["id"]})
        resp = client.get(f"/api/v1/versions/{child['id']}/lineage")
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Version lineage is inconsistent"

    def test_lineage_missing(self, client):
        assert client.get("/api/v1/versions/nope/lineage").status_code == 404

    def test_audit_trail(self, client, version):
        _status(client, version["id"], "REVIEW", comment="ready", author="bob")
        resp = client.get(f"/api/v1/versions/{version['id']}/audit-trail")
        assert resp.status_code == 200
        entries = resp.json()
        assert {e["action"] for e in entries} == {"CREATED", "STATUS_CHANGED"}
        change = next(e for e in entries if e["action"] == "STATUS_CHANGED")
        assert change["performed_by"] == "bob"
        assert change["comment"] == "ready"

    def test_audit_trail_missing(self, client):
        assert client.get("/api/v1/versions/nope/audit-trail").status_code == 404


class TestValidateParameters:
    def test_valid(self, client, version):
        resp = client.post(
            f"/api/v1/versions/{version['id']}/validate-parameters",
            json={"values": {"name": "Ada"}},
        )
        data = resp.json()
        assert data["valid"] is True
        assert data["validated_values"] == {"name": "Ada"}

    def test_missing_required(self, client, version):
        resp = client.post(
            f"/api/v1/versions/{version['id']}/validate-parameters", json={"values": {}}
        )
        data = resp.json()
        assert data["valid"] is False
        assert data["missing_required"] == ["name"]
        assert data["issues"][0]["severity"] == "ERROR"

    def test_missing_version(self, client):
        resp = client.post("/api/v1/versions/nope/validate-parameters", json={"values": {}})
        assert resp.status_code == 404
