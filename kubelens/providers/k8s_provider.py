"""Kubernetes API client for discovery, listing, logs and metrics (read-only)."""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from kubelens.config import ServerConfig
from kubelens.core.errors import MetricsServerUnavailableError, UpstreamUnavailableError
from kubelens.core.models import KubeContext, LogRequest, ResourceIdentifier, ResourceTypeDescriptor
from kubelens.core.time_window import since_seconds_from

logger = logging.getLogger(__name__)

METRICS_GROUP = "metrics.k8s.io"
METRICS_VERSION = "v1beta1"

_api_clients: Dict[Tuple[str, str], Any] = {}
_init_lock = threading.Lock()


@runtime_checkable
class K8sProvider(Protocol):
    def discover_resources(self, *, context: Optional[str] = None) -> List[ResourceTypeDescriptor]: ...

    def list_resources(
        self,
        gvr: ResourceIdentifier,
        *,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
        field_selector: Optional[str] = None,
        limit: Optional[int] = None,
        continue_token: Optional[str] = None,
        context: Optional[str] = None,
    ) -> Dict[str, Any]: ...

    def get_resource(
        self, gvr: ResourceIdentifier, name: str, *, namespace: Optional[str] = None, context: Optional[str] = None
    ) -> Dict[str, Any]: ...

    def read_pod_log(self, req: LogRequest, *, context: Optional[str] = None) -> str: ...

    def get_pod_containers(self, namespace: str, pod_name: str, *, context: Optional[str] = None) -> List[str]: ...

    def list_node_metrics(self, *, context: Optional[str] = None) -> Dict[str, Any]: ...

    def get_node_metrics(self, node_name: str, *, context: Optional[str] = None) -> Dict[str, Any]: ...

    def list_pod_metrics(self, *, namespace: Optional[str] = None, context: Optional[str] = None) -> Dict[str, Any]: ...

    def get_pod_metrics(self, namespace: str, pod_name: str, *, context: Optional[str] = None) -> Dict[str, Any]: ...

    def list_contexts(self) -> List[KubeContext]: ...


class DefaultK8sProvider:
    """Provider backed by the official `kubernetes` client; per-call context overrides the configured one."""

    def __init__(self, config: Optional[ServerConfig] = None) -> None:
        cfg = config or ServerConfig()
        self.kubeconfig = cfg.kubeconfig
        self.context = cfg.context

    def _client(self, context: Optional[str]):
        return _get_api_client(self.kubeconfig, context or self.context)

    def discover_resources(self, *, context: Optional[str] = None) -> List[ResourceTypeDescriptor]:
        return discover_resources(self._client(context))

    def list_resources(
        self,
        gvr: ResourceIdentifier,
        *,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
        field_selector: Optional[str] = None,
        limit: Optional[int] = None,
        continue_token: Optional[str] = None,
        context: Optional[str] = None,
    ) -> Dict[str, Any]:
        return list_resources(
            self._client(context),
            gvr,
            namespace=namespace,
            label_selector=label_selector,
            field_selector=field_selector,
            limit=limit,
            continue_token=continue_token,
        )

    def get_resource(
        self, gvr: ResourceIdentifier, name: str, *, namespace: Optional[str] = None, context: Optional[str] = None
    ) -> Dict[str, Any]:
        return get_resource(self._client(context), gvr, name, namespace=namespace)

    def read_pod_log(self, req: LogRequest, *, context: Optional[str] = None) -> str:
        return read_pod_log(self._client(context), req)

    def get_pod_containers(self, namespace: str, pod_name: str, *, context: Optional[str] = None) -> List[str]:
        return get_pod_containers(self._client(context), namespace, pod_name)

    def list_node_metrics(self, *, context: Optional[str] = None) -> Dict[str, Any]:
        return list_node_metrics(self._client(context))

    def get_node_metrics(self, node_name: str, *, context: Optional[str] = None) -> Dict[str, Any]:
        return get_node_metrics(self._client(context), node_name)

    def list_pod_metrics(self, *, namespace: Optional[str] = None, context: Optional[str] = None) -> Dict[str, Any]:
        return list_pod_metrics(self._client(context), namespace=namespace)

    def get_pod_metrics(self, namespace: str, pod_name: str, *, context: Optional[str] = None) -> Dict[str, Any]:
        return get_pod_metrics(self._client(context), namespace, pod_name)

    def list_contexts(self) -> List[KubeContext]:
        return list_contexts(self.kubeconfig)


def get_k8s_provider(config: Optional[ServerConfig] = None) -> K8sProvider:
    """Seam for swapping provider implementations (tests patch this)."""
    return DefaultK8sProvider(config)


def _kubeconfig_path(kubeconfig: Optional[str]) -> str:
    raw = (kubeconfig or os.getenv("KUBECONFIG") or "").strip()
    if raw:
        return raw.split(os.pathsep)[0]
    return os.path.join(os.path.expanduser("~"), ".kube", "config")


def _get_api_client(kubeconfig: Optional[str], context: Optional[str]):
    """
    Return a cached ApiClient for (kubeconfig, context).

    Uses the kubeconfig file when one exists, otherwise the in-cluster service
    account. Each kube context gets its own client so per-request context switches
    don't disturb the default one.
    """
    key = (kubeconfig or "", context or "")
    cached = _api_clients.get(key)
    if cached is not None:
        return cached

    with _init_lock:
        cached = _api_clients.get(key)
        if cached is not None:
            return cached

        from kubernetes import client, config

        path = _kubeconfig_path(kubeconfig)
        try:
            if os.path.exists(path):
                api_client = config.new_client_from_config(config_file=path, context=context or None)
            else:
                if context:
                    raise UpstreamUnavailableError(f"kubeconfig {path!r} not found; cannot select context {context!r}")
                cfg = client.Configuration()
                config.load_incluster_config(client_configuration=cfg)
                api_client = client.ApiClient(configuration=cfg)
        except config.ConfigException as e:
            suffix = f" with context {context!r}" if context else ""
            raise UpstreamUnavailableError(f"failed to build Kubernetes client{suffix}: {e}") from e

        _api_clients[key] = api_client
        logger.debug("Initialised Kubernetes client (kubeconfig=%s, context=%s)", path, context or "<current>")
        return api_client


def _get_json(api_client, path: str, query: Optional[List[Tuple[str, Any]]] = None) -> Dict[str, Any]:
    data = api_client.call_api(
        path,
        "GET",
        query_params=query or [],
        header_params={"Accept": "application/json"},
        response_type="object",
        auth_settings=["BearerToken"],
        _return_http_data_only=True,
    )
    return data if isinstance(data, dict) else {}


def _ordered_versions(group: Dict[str, Any]) -> List[str]:
    """Group versions with the server-preferred one first."""
    preferred = (group.get("preferredVersion") or {}).get("groupVersion")
    versions = [v.get("groupVersion") for v in (group.get("versions") or []) if v.get("groupVersion")]
    if preferred in versions:
        versions.remove(preferred)
        versions.insert(0, preferred)
    return versions


def discover_resources(api_client) -> List[ResourceTypeDescriptor]:
    """
    Build the ordered discovery catalog.

    Order: core group versions, then named groups in server order; within a group
    the preferred version comes first. Resolution without a version hint relies on
    this order.

    Raises:
        UpstreamUnavailableError: the root discovery documents cannot be fetched, or
            nothing at all could be discovered.
    """
    try:
        core = _get_json(api_client, "/api")
        groups = _get_json(api_client, "/apis")
    except Exception as e:
        raise UpstreamUnavailableError(f"failed to discover resources: {e}") from e

    group_versions: List[Tuple[str, str]] = [(v, f"/api/{v}") for v in (core.get("versions") or [])]
    for group in groups.get("groups") or []:
        for gv in _ordered_versions(group):
            group_versions.append((gv, f"/apis/{gv}"))

    catalog: List[ResourceTypeDescriptor] = []
    failed: List[str] = []
    for gv, path in group_versions:
        try:
            doc = _get_json(api_client, path)
        except Exception as e:
            # Aggregated APIs (e.g. a broken metrics-server) fail individually; keep the rest.
            logger.warning("Discovery failed for %s: %s", gv, str(e)[:200])
            failed.append(gv)
            continue
        for raw in doc.get("resources") or []:
            if isinstance(raw, dict):
                catalog.append(ResourceTypeDescriptor.from_discovery(gv, raw))

    if not catalog:
        detail = f" (failed group versions: {', '.join(failed)})" if failed else ""
        raise UpstreamUnavailableError(f"failed to discover resources: no API resources returned{detail}")
    return catalog


def list_resources(
    api_client,
    gvr: ResourceIdentifier,
    *,
    namespace: Optional[str] = None,
    label_selector: Optional[str] = None,
    field_selector: Optional[str] = None,
    limit: Optional[int] = None,
    continue_token: Optional[str] = None,
) -> Dict[str, Any]:
    """List objects of any type; label/field selectors and server-side limit/continue pass through."""
    query: List[Tuple[str, Any]] = []
    if label_selector:
        query.append(("labelSelector", label_selector))
    if field_selector:
        query.append(("fieldSelector", field_selector))
    if limit:
        query.append(("limit", int(limit)))
    if continue_token:
        query.append(("continue", continue_token))
    return _get_json(api_client, gvr.path(namespace=namespace), query)


def get_resource(
    api_client, gvr: ResourceIdentifier, name: str, *, namespace: Optional[str] = None
) -> Dict[str, Any]:
    return _get_json(api_client, gvr.path(namespace=namespace, name=name))


def read_pod_log(api_client, req: LogRequest) -> str:
    """
    Read logs from a pod container.

    An absolute since time is sent as since_seconds: the Python client does not
    expose the sinceTime query parameter.
    """
    from kubernetes import client

    kwargs: Dict[str, Any] = {"name": req.pod, "namespace": req.namespace, "previous": req.previous}
    if req.container:
        kwargs["container"] = req.container
    if req.tail_lines is not None:
        kwargs["tail_lines"] = req.tail_lines
    since_seconds = since_seconds_from(req.since)
    if since_seconds is not None and since_seconds > 0:
        kwargs["since_seconds"] = since_seconds

    v1 = client.CoreV1Api(api_client)
    return v1.read_namespaced_pod_log(**kwargs) or ""


def get_pod_containers(api_client, namespace: str, pod_name: str) -> List[str]:
    from kubernetes import client

    pod = client.CoreV1Api(api_client).read_namespaced_pod(name=pod_name, namespace=namespace)
    spec = getattr(pod, "spec", None)
    return [c.name for c in (getattr(spec, "containers", None) or [])]


def _is_metrics_server_error(err: Exception) -> bool:
    status = getattr(err, "status", None)
    if status in (404, 503):
        return True
    s = str(err).lower()
    return any(
        needle in s
        for needle in (
            "metrics-server",
            "metrics.k8s.io",
            "the server could not find the requested resource",
            "no metrics available",
            "unable to fetch metrics",
        )
    )


def _metrics_call(fn, *args, **kwargs) -> Dict[str, Any]:
    try:
        data = fn(METRICS_GROUP, METRICS_VERSION, *args, **kwargs)
    except Exception as e:
        if _is_metrics_server_error(e):
            raise MetricsServerUnavailableError(str(e)[:300]) from e
        raise
    return data if isinstance(data, dict) else {}


def list_node_metrics(api_client) -> Dict[str, Any]:
    from kubernetes import client

    co = client.CustomObjectsApi(api_client)
    return _metrics_call(co.list_cluster_custom_object, "nodes")


def get_node_metrics(api_client, node_name: str) -> Dict[str, Any]:
    from kubernetes import client

    co = client.CustomObjectsApi(api_client)
    return _metrics_call(co.get_cluster_custom_object, "nodes", node_name)


def list_pod_metrics(api_client, *, namespace: Optional[str] = None) -> Dict[str, Any]:
    from kubernetes import client

    co = client.CustomObjectsApi(api_client)
    if namespace:
        return _metrics_call(co.list_namespaced_custom_object, namespace, "pods")
    return _metrics_call(co.list_cluster_custom_object, "pods")


def get_pod_metrics(api_client, namespace: str, pod_name: str) -> Dict[str, Any]:
    from kubernetes import client

    co = client.CustomObjectsApi(api_client)
    return _metrics_call(co.get_namespaced_custom_object, namespace, "pods", pod_name)


def list_contexts(kubeconfig: Optional[str] = None) -> List[KubeContext]:
    """Kubeconfig contexts, current context first, then by name."""
    from kubernetes import config

    path = _kubeconfig_path(kubeconfig)
    try:
        contexts, active = config.list_kube_config_contexts(config_file=path)
    except (config.ConfigException, OSError) as e:
        raise UpstreamUnavailableError(f"failed to load kubeconfig: {e}") from e

    current = (active or {}).get("name")
    out: List[KubeContext] = []
    for c in contexts or []:
        ctx = c.get("context") or {}
        out.append(
            KubeContext(
                name=str(c.get("name") or ""),
                cluster=str(ctx.get("cluster") or ""),
                user=str(ctx.get("user") or ""),
                namespace=ctx.get("namespace") or None,
                current=c.get("name") == current,
            )
        )
    out.sort(key=lambda k: (not k.current, k.name))
    return out
