from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import kubelens.api.server as srv


class _MockK8sProvider:
    def read_pod_log(self, req, *, context=None):
        return "a\nb\nc\n"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr("kubelens.tools.tools.get_k8s_provider", lambda config=None: _MockK8sProvider())
    return TestClient(srv.app)


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_tools_catalog_hides_disabled(client, monkeypatch):
    r = client.get("/tools")
    assert r.status_code == 200
    names = [t["name"] for t in r.json()["tools"]]
    assert "get_logs" in names
    logs = next(t for t in r.json()["tools"] if t["name"] == "get_logs")
    assert {"name": "name", "type": "string", "required": True, "description": "Pod name"} in logs["parameters"]

    monkeypatch.setenv("DISABLED_TOOLS", "get_logs,decode_base64")
    names = [t["name"] for t in client.get("/tools").json()["tools"]]
    assert "get_logs" not in names
    assert "decode_base64" not in names


def test_call_tool_ok(client):
    r = client.post("/tools/get_logs", json={"namespace": "shop", "name": "web-0", "grep_exclude": "b"})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["error"] is None
    assert body["result"]["logs"] == "a\nc"


def test_call_tool_without_body(client):
    r = client.post("/tools/list_resources")
    assert r.status_code == 400
    assert r.json()["error"] == "missing_required_args:resource_type"


def test_call_unknown_tool_is_404(client):
    assert client.post("/tools/delete_pod", json={}).status_code == 404


def test_call_disabled_tool_is_403(client, monkeypatch):
    monkeypatch.setenv("DISABLED_TOOLS", "GET_LOGS")
    r = client.post("/tools/get_logs", json={"namespace": "shop", "name": "web-0"})
    assert r.status_code == 403


def test_failed_tool_is_400_with_code_and_detail(client):
    r = client.post("/tools/get_logs", json={"namespace": "shop", "name": "web-0", "since": "whenever"})
    assert r.status_code == 400
    body = r.json()
    assert body["ok"] is False
    assert body["error"] == "invalid_since"
    assert body["detail"] == "invalid since time format: whenever"
