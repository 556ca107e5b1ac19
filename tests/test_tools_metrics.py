"""
Unit tests for node/pod metrics tools and their client-side pagination.
"""

from __future__ import annotations

import pytest

from kubelens.core.errors import MetricsServerUnavailableError
from kubelens.core.models import PaginationCursor
from kubelens.core.pagination import decode_continue_token, encode_continue_token
from kubelens.tools.tools import run_tool


def _node(name, minute):
    return {
        "metadata": {"name": name},
        "timestamp": f"2024-05-01T10:{minute:02d}:00Z",
        "window": "30s",
        "usage": {"cpu": "100m", "memory": "512Mi"},
    }


def _pod(name, ns, minute):
    return {
        "metadata": {"name": name, "namespace": ns},
        "timestamp": f"2024-05-01T10:{minute:02d}:00Z",
        "window": "30s",
        "containers": [{"name": "app", "usage": {"cpu": "5m", "memory": "20Mi"}}],
    }


class _MockK8sProvider:
    def __init__(self):
        # Deliberately unsorted.
        self.nodes = [_node(f"node-{i}", m) for i, m in enumerate([3, 9, 1, 7, 5])]
        self.pods = [_pod("a", "shop", 1), _pod("b", "shop", 4), _pod("c", "ops", 2), _pod("d", "shop", 3)]
        self.calls = []

    def list_node_metrics(self, *, context=None):
        self.calls.append(("list_nodes", context))
        return {"kind": "NodeMetricsList", "items": list(self.nodes)}

    def get_node_metrics(self, node_name, *, context=None):
        self.calls.append(("get_node", node_name))
        return next(n for n in self.nodes if n["metadata"]["name"] == node_name)

    def list_pod_metrics(self, *, namespace=None, context=None):
        self.calls.append(("list_pods", namespace))
        pods = [p for p in self.pods if not namespace or p["metadata"]["namespace"] == namespace]
        return {"kind": "PodMetricsList", "items": pods}

    def get_pod_metrics(self, namespace, pod_name, *, context=None):
        self.calls.append(("get_pod", namespace, pod_name))
        return next(p for p in self.pods if p["metadata"]["name"] == pod_name)


@pytest.fixture
def mock_k8s_provider(monkeypatch):
    provider = _MockK8sProvider()
    monkeypatch.setattr("kubelens.tools.tools.get_k8s_provider", lambda config=None: provider)
    return provider


def _names(res):
    return [i["name"] for i in res.result["items"]]


def test_node_metrics_all_sorted_newest_first(mock_k8s_provider):
    res = run_tool("get_node_metrics", {})
    assert res.ok, res
    assert res.result["kind"] == "NodeMetricsList"
    assert res.result["apiVersion"] == "metrics.k8s.io/v1beta1"
    assert res.result["count"] == 5
    assert _names(res) == ["node-1", "node-3", "node-4", "node-0", "node-2"]
    assert "continue" not in res.result


def test_node_metrics_cursor_chain_reconstructs_full_list(mock_k8s_provider):
    full = _names(run_tool("get_node_metrics", {}))
    seen, token = [], ""
    while True:
        res = run_tool("get_node_metrics", {"limit": 2, "continue": token})
        assert res.ok, res
        assert res.result["count"] == len(res.result["items"]) <= 2
        seen.extend(_names(res))
        token = res.result.get("continue")
        if not token:
            break
    assert seen == full


def test_node_tokens_carry_empty_scope(mock_k8s_provider):
    res = run_tool("get_node_metrics", {"limit": 2})
    assert decode_continue_token(res.result["continue"]) == PaginationCursor(offset=2, kind="node", namespace="")


def test_single_node(mock_k8s_provider):
    res = run_tool("get_node_metrics", {"node_name": "node-2"})
    assert res.ok
    assert res.result["name"] == "node-2"
    assert res.result["usage"] == {"cpu": "100m", "memory": "512Mi"}


def test_pod_metrics_namespace_scope_and_pagination(mock_k8s_provider):
    first = run_tool("get_pod_metrics", {"namespace": "shop", "limit": 2})
    assert first.ok, first
    assert first.result["namespace"] == "shop"
    assert _names(first) == ["b", "d"]
    assert decode_continue_token(first.result["continue"]).namespace == "shop"

    second = run_tool("get_pod_metrics", {"namespace": "shop", "limit": 2, "continue": first.result["continue"]})
    assert _names(second) == ["a"]
    assert "continue" not in second.result
    assert ("list_pods", "shop") in mock_k8s_provider.calls


def test_pod_metrics_all_namespaces(mock_k8s_provider):
    res = run_tool("get_pod_metrics", {})
    assert _names(res) == ["b", "d", "c", "a"]
    assert res.result["namespace"] == ""
    assert ("list_pods", None) in mock_k8s_provider.calls


def test_pod_token_from_other_namespace_restarts(mock_k8s_provider):
    token = encode_continue_token(PaginationCursor(offset=2, kind="pod", namespace="ops"))
    res = run_tool("get_pod_metrics", {"namespace": "shop", "limit": 2, "continue": token})
    assert res.ok
    assert _names(res) == ["b", "d"]


def test_node_token_rejected_for_pod_metrics(mock_k8s_provider):
    token = run_tool("get_node_metrics", {"limit": 1}).result["continue"]
    res = run_tool("get_pod_metrics", {"limit": 1, "continue": token})
    assert not res.ok
    assert res.error == "continue_token_kind_mismatch"


def test_pod_token_rejected_for_node_metrics(mock_k8s_provider):
    token = encode_continue_token(PaginationCursor(offset=1, kind="pod"))
    assert run_tool("get_node_metrics", {"limit": 1, "continue": token}).error == "continue_token_kind_mismatch"


def test_garbage_token(mock_k8s_provider):
    res = run_tool("get_node_metrics", {"limit": 1, "continue": "%%%"})
    assert res.error == "invalid_continue_token"


def test_token_ignored_without_limit(mock_k8s_provider):
    res = run_tool("get_node_metrics", {"continue": "%%%"})
    assert res.ok
    assert res.result["count"] == 5


def test_single_pod_requires_namespace(mock_k8s_provider):
    assert run_tool("get_pod_metrics", {"pod_name": "a"}).error == "missing_required_args:namespace"

    res = run_tool("get_pod_metrics", {"pod_name": "a", "namespace": "shop"})
    assert res.ok
    assert res.result["namespace"] == "shop"
    assert res.result["containers"][0]["name"] == "app"


def test_metrics_server_outage(monkeypatch):
    class _NoMetrics:
        def list_node_metrics(self, *, context=None):
            raise MetricsServerUnavailableError("the server could not find the requested resource")

    monkeypatch.setattr("kubelens.tools.tools.get_k8s_provider", lambda config=None: _NoMetrics())
    res = run_tool("get_node_metrics", {})
    assert not res.ok
    assert res.error == "metrics_server_unavailable"
    assert "metrics-server" in res.detail
