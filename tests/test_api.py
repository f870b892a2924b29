"""Tests for taskhub.api.app — routes, authentication and error envelopes over HTTP."""

import pytest

from taskhub.db.base import engine_registry
from taskhub.db.session import ENGINE_NAME

PREFIX = "/api/v1/internal"


def _create(client, headers, **body):
    body.setdefault("title", "Buy milk")
    resp = client.post(f"{PREFIX}/task", json=body, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["idTask"]


class TestAuthentication:
    def test_missing_key(self, client):
        resp = client.get(f"{PREFIX}/task")
        assert resp.status_code == 401
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "MISSING_API_KEY"

    def test_malformed_key(self, client):
        resp = client.get(f"{PREFIX}/task", headers={"X-API-Key": "not-a-key"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "INVALID_API_KEY"

    def test_user_id_beyond_column_range(self, client):
        resp = client.get(f"{PREFIX}/task", headers={"X-API-Key": "thk_99999999999999999999_abc"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "INVALID_API_KEY"

    def test_wrong_secret(self, client, tenants):
        forged = f"thk_{tenants.user_a}_forged-secret"
        resp = client.get(f"{PREFIX}/task", headers={"X-API-Key": forged})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "INVALID_API_KEY"

    def test_valid_key(self, client, headers_a):
        resp = client.get(f"{PREFIX}/task", headers=headers_a)
        assert resp.status_code == 200
        assert resp.json()["data"] == []


class TestTaskRoutes:
    def test_create_and_get(self, client, headers_a):
        task_id = _create(
            client, headers_a,
            title="Buy milk", description="2 litres", dueDate="2026-12-24T10:00:00Z", priority=2,
        )
        resp = client.get(f"{PREFIX}/task/{task_id}", headers=headers_a)

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert "timestamp" in body["metadata"]
        data = body["data"]
        assert data["idTask"] == task_id
        assert data["title"] == "Buy milk"
        assert data["description"] == "2 litres"
        assert data["dueDate"] == "2026-12-24"
        assert data["priority"] == 2
        assert data["status"] == 0

    def test_default_priority(self, client, headers_a):
        task_id = _create(client, headers_a, title="Defaults")
        assert client.get(f"{PREFIX}/task/{task_id}", headers=headers_a).json()["data"]["priority"] == 1

    def test_list_with_filters(self, client, headers_a):
        low = _create(client, headers_a, title="Low", priority=0)
        high = _create(client, headers_a, title="High", priority=2)

        all_ids = [t["idTask"] for t in client.get(f"{PREFIX}/task", headers=headers_a).json()["data"]]
        low_ids = [t["idTask"] for t in client.get(
            f"{PREFIX}/task", params={"priority": 0}, headers=headers_a,
        ).json()["data"]]

        assert all_ids == [high, low]
        assert low_ids == [low]

    def test_update(self, client, headers_a):
        task_id = _create(client, headers_a, title="Draft")
        resp = client.put(
            f"{PREFIX}/task/{task_id}",
            json={"title": "Final", "description": None, "dueDate": None, "priority": 2, "status": 1},
            headers=headers_a,
        )
        assert resp.status_code == 200
        assert resp.json()["data"] == {"idTask": task_id}

        data = client.get(f"{PREFIX}/task/{task_id}", headers=headers_a).json()["data"]
        assert data["title"] == "Final"
        assert data["status"] == 1

    def test_delete(self, client, headers_a):
        task_id = _create(client, headers_a, title="Temporary")
        assert client.delete(f"{PREFIX}/task/{task_id}", headers=headers_a).status_code == 200

        resp = client.delete(f"{PREFIX}/task/{task_id}", headers=headers_a)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "taskDoesntExist"

    def test_tenant_isolation(self, client, headers_a, headers_b):
        task_id = _create(client, headers_a, title="Private")

        resp = client.get(f"{PREFIX}/task/{task_id}", headers=headers_b)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "taskDoesntExist"
        assert client.get(f"{PREFIX}/task", headers=headers_b).json()["data"] == []


class TestDomainErrors:
    @pytest.mark.parametrize("body, code", [
        ({}, "titleRequired"),
        ({"title": None}, "titleRequired"),
        ({"title": "ab"}, "titleTooShort"),
        ({"title": "x" * 101}, "titleTooLong"),
        ({"title": "Valid", "description": "d" * 1001}, "descriptionTooLong"),
        ({"title": "Valid", "dueDate": "2000-01-01T00:00:00Z"}, "dueDateInPast"),
        ({"title": "Valid", "priority": 5}, "invalidPriority"),
    ])
    def test_create_rejections(self, client, headers_a, body, code):
        resp = client.post(f"{PREFIX}/task", json=body, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == code

    def test_invalid_status(self, client, headers_a):
        task_id = _create(client, headers_a, title="Draft")
        resp = client.put(
            f"{PREFIX}/task/{task_id}",
            json={"title": "Draft", "priority": 1, "status": 4},
            headers=headers_a,
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalidStatus"

    @pytest.mark.parametrize("method", ["get", "delete"])
    def test_task_id_beyond_column_range(self, client, headers_a, method):
        resp = getattr(client, method)(f"{PREFIX}/task/99999999999999999999", headers=headers_a)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "taskDoesntExist"

    def test_update_task_id_beyond_column_range(self, client, headers_a):
        resp = client.put(
            f"{PREFIX}/task/99999999999999999999",
            json={"title": "Draft", "priority": 1, "status": 0},
            headers=headers_a,
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "taskDoesntExist"


class TestRequestValidation:
    def test_wrong_type(self, client, headers_a):
        resp = client.post(f"{PREFIX}/task", json={"title": "Valid", "priority": "high"}, headers=headers_a)
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["details"]

    def test_update_requires_status(self, client, headers_a):
        task_id = _create(client, headers_a, title="Draft")
        resp = client.put(f"{PREFIX}/task/{task_id}", json={"title": "Draft", "priority": 1}, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize("task_id", ["0", "-1", "abc"])
    def test_bad_task_id(self, client, headers_a, task_id):
        resp = client.get(f"{PREFIX}/task/{task_id}", headers=headers_a)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_filter_out_of_range(self, client, headers_a):
        resp = client.get(f"{PREFIX}/task", params={"status": 3}, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


class TestRoutingAndHealth:
    def test_unknown_route(self, client):
        resp = client.get("/api/v1/internal/nope")
        assert resp.status_code == 404
        error = resp.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["message"] == "Route GET /api/v1/internal/nope not found"
        assert error["path"] == "/api/v1/internal/nope"
        assert error["method"] == "GET"

    def test_method_not_allowed(self, client, headers_a):
        resp = client.patch(f"{PREFIX}/task/1", headers=headers_a)
        assert resp.status_code == 405
        assert resp.json()["error"]["code"] == "HTTP_405"

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
        assert resp.json()["database"] is True

    def test_health_database_down(self, client):
        engine_registry.dispose(ENGINE_NAME)
        resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.json()["status"] == "unhealthy"


class TestLifespan:
    def test_startup_and_shutdown_events(self, db, tenants, service, app_config, tmp_path):
        import json

        from fastapi.testclient import TestClient

        from taskhub.api.app import create_app
        from taskhub.engine.security import APIKeyAuthenticator

        app = create_app(app_config, service=service, authenticator=APIKeyAuthenticator(db))
        with TestClient(app) as client:
            client.get(f"{PREFIX}/task", headers={"X-API-Key": tenants.key_a})
            client.get(f"{PREFIX}/task")

        log_dir = tmp_path / "logs"
        system = [json.loads(line) for path in (log_dir / "system" / "execution").glob("*.jsonl")
                  for line in path.read_text().splitlines()]
        requests = [json.loads(line) for path in (log_dir / "web_apis" / "execution").glob("*.jsonl")
                    for line in path.read_text().splitlines()]
        security = [json.loads(line) for path in (log_dir / "web_apis" / "security").glob("*.jsonl")
                    for line in path.read_text().splitlines()]

        assert [e["event"] for e in system] == ["startup", "shutdown"]
        assert [e["status_code"] for e in requests] == [200, 401]
        assert requests[0]["account_id"] == tenants.account_a
        assert security[0]["reason"] == "missing_api_key"
