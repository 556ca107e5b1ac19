"""
Pytest config.

Tests import the local `kubelens/` package and `main.py` straight from the repo
root, whether or not the project has been pip-installed. We pin the repo root on
sys.path so a global `pytest` entrypoint collects the same way.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


_CONFIG_ENV = (
    "KUBECONFIG",
    "KUBELENS_CONTEXT",
    "KUBELENS_NAMESPACE",
    "NAMESPACE",
    "DISABLED_TOOLS",
    "KUBELENS_HOST",
    "KUBELENS_PORT",
    "LOG_LEVEL",
    "KUBELENS_MAX_LOG_BYTES",
)


@pytest.fixture(autouse=True)
def _clean_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell (KUBECONFIG, NAMESPACE, ...) out of unit tests."""
    for key in _CONFIG_ENV:
        monkeypatch.delenv(key, raising=False)


def _descriptor(group_version: str, name: str, kind: str = "", singular: str = "", short=(), namespaced=True):
    from kubelens.core.models import ResourceTypeDescriptor

    return ResourceTypeDescriptor.from_discovery(
        group_version,
        {
            "name": name,
            "singularName": singular,
            "kind": kind,
            "shortNames": list(short),
            "namespaced": namespaced,
            "verbs": ["get", "list", "watch"],
        },
    )


@pytest.fixture
def make_descriptor():
    return _descriptor


@pytest.fixture
def sample_catalog():
    """Small discovery catalog in server order: core first, then named groups."""
    return [
        _descriptor("v1", "pods", "Pod", "pod", ("po",)),
        _descriptor("v1", "pods/log", "Pod", ""),
        _descriptor("v1", "pods/status", "Pod", ""),
        _descriptor("v1", "services", "Service", "service", ("svc",)),
        _descriptor("v1", "nodes", "Node", "node", ("no",), namespaced=False),
        _descriptor("v1", "namespaces", "Namespace", "namespace", ("ns",), namespaced=False),
        _descriptor("v1", "events", "Event", "event", ("ev",)),
        _descriptor("apps/v1", "deployments", "Deployment", "deployment", ("deploy",)),
        _descriptor("apps/v1", "deployments/scale", "Scale", ""),
        _descriptor("apps/v1", "statefulsets", "StatefulSet", "statefulset", ("sts",)),
        _descriptor("events.k8s.io/v1", "events", "Event", "event", ("ev",)),
        _descriptor("autoscaling/v2", "horizontalpodautoscalers", "HorizontalPodAutoscaler", "", ("hpa",)),
        _descriptor("autoscaling/v1", "horizontalpodautoscalers", "HorizontalPodAutoscaler", "", ("hpa",)),
    ]
