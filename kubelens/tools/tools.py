from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

from kubelens.authz.policy import ToolPolicy
from kubelens.config import ServerConfig
from kubelens.core.errors import KubelensError
from kubelens.core.log_filter import count_matching_lines, split_lines, validate_filter_spec
from kubelens.core.models import FilterSpec, LogRequest
from kubelens.core.pagination import paginate
from kubelens.core.resolver import list_api_resources, resolve_resource_type
from kubelens.core.summaries import (
    NodeMetricsItem,
    PodMetricsItem,
    parse_list_items,
    sort_newest_first,
)
from kubelens.core.time_window import parse_since
from kubelens.providers.k8s_provider import METRICS_GROUP, METRICS_VERSION, get_k8s_provider

logger = logging.getLogger(__name__)

METRICS_API_VERSION = f"{METRICS_GROUP}/{METRICS_VERSION}"

# Args worth echoing in the call log (never log payloads like base64 data).
_LOGGED_ARGS = (
    "resource_type",
    "api_version",
    "namespace",
    "name",
    "pod_name",
    "node_name",
    "context",
    "limit",
    "since",
)


@dataclass(frozen=True)
class ToolResult:
    ok: bool
    result: Any = None
    error: Optional[str] = None
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class _ArgError(Exception):
    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


def _compact(obj: Any, *, max_chars: int = 300) -> str:
    try:
        s = json.dumps(obj, ensure_ascii=False, default=str)
    except Exception:
        s = str(obj)
    return s if len(s) <= max_chars else s[:max_chars] + "..."


def _str_arg(args: Dict[str, Any], key: str) -> str:
    return str(args.get(key) or "").strip()


def _int_arg(args: Dict[str, Any], key: str) -> Optional[int]:
    raw = args.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, bool):
        raise _ArgError(f"invalid_argument:{key}")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise _ArgError(f"invalid_argument:{key}") from None


def _bool_arg(args: Dict[str, Any], key: str) -> bool:
    raw = args.get(key)
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "y", "on")
    return bool(raw)


def _require(**values: Any) -> None:
    missing = [k for k, v in values.items() if not v]
    if missing:
        raise _ArgError(f"missing_required_args:{','.join(missing)}")


def _split_patterns(raw: str) -> List[str]:
    """Comma-separated patterns, each trimmed. Empty input means no patterns."""
    if not raw:
        return []
    return [p.strip() for p in raw.split(",")]


# --------------------
# resources
# --------------------


def _list_resources(args: Dict[str, Any], config: ServerConfig) -> Dict[str, Any]:
    resource_type = _str_arg(args, "resource_type")
    _require(resource_type=resource_type)
    namespace = _str_arg(args, "namespace") or (config.namespace or "")
    context = _str_arg(args, "context") or None
    limit = _int_arg(args, "limit") or 0
    continue_token = _str_arg(args, "continue")

    k8s = get_k8s_provider(config)
    gvr = resolve_resource_type(resource_type, _str_arg(args, "api_version"), k8s.discover_resources(context=context))
    payload = k8s.list_resources(
        gvr,
        namespace=namespace or None,
        label_selector=_str_arg(args, "label_selector") or None,
        field_selector=_str_arg(args, "field_selector") or None,
        limit=limit if limit > 0 else None,
        continue_token=continue_token or None,
        context=context,
    )

    items = parse_list_items(payload, "resource")
    # Server-side pages keep the server's order; re-sorting would break continuation.
    if limit <= 0 and not continue_token:
        items = sort_newest_first(items)

    result: Dict[str, Any] = {
        "resource_type": resource_type,
        "namespace": namespace,
        "count": len(items),
        "items": [it.to_dict() for it in items],
    }
    nxt = (payload.get("metadata") or {}).get("continue")
    if nxt:
        result["continue"] = nxt
    return result


def _get_resource(args: Dict[str, Any], config: ServerConfig) -> Dict[str, Any]:
    resource_type = _str_arg(args, "resource_type")
    name = _str_arg(args, "name")
    _require(resource_type=resource_type, name=name)
    namespace = _str_arg(args, "namespace") or (config.namespace or "")
    context = _str_arg(args, "context") or None

    k8s = get_k8s_provider(config)
    gvr = resolve_resource_type(resource_type, _str_arg(args, "api_version"), k8s.discover_resources(context=context))
    if gvr.namespaced:
        _require(namespace=namespace)
    return k8s.get_resource(gvr, name, namespace=namespace or None, context=context)


def _list_api_resources(args: Dict[str, Any], config: ServerConfig) -> Dict[str, Any]:
    context = _str_arg(args, "context") or None
    catalog = get_k8s_provider(config).discover_resources(context=context)
    resources = []
    for e in list_api_resources(catalog):
        entry: Dict[str, Any] = {
            "name": e.name,
            "singularName": e.singular_name,
            "namespaced": e.namespaced,
            "kind": e.kind,
            "verbs": list(e.verbs),
            "apiVersion": e.api_version,
        }
        if e.short_names:
            entry["shortNames"] = list(e.short_names)
        if e.categories:
            entry["categories"] = list(e.categories)
        resources.append(entry)
    return {"resources": resources, "count": len(resources)}


def _list_contexts(args: Dict[str, Any], config: ServerConfig) -> Dict[str, Any]:
    contexts = [c.model_dump(exclude_none=True) for c in get_k8s_provider(config).list_contexts()]
    return {"contexts": contexts, "count": len(contexts)}


# --------------------
# logs
# --------------------


def _get_logs(args: Dict[str, Any], config: ServerConfig) -> Dict[str, Any]:
    pod = _str_arg(args, "name") or _str_arg(args, "pod_name")
    namespace = _str_arg(args, "namespace") or (config.namespace or "")
    _require(name=pod, namespace=namespace)
    container = _str_arg(args, "container") or None
    context = _str_arg(args, "context") or None
    max_lines = _int_arg(args, "max_lines")
    since_raw = _str_arg(args, "since")
    previous = _bool_arg(args, "previous")

    spec = FilterSpec(
        include=_split_patterns(_str_arg(args, "grep_include")),
        exclude=_split_patterns(_str_arg(args, "grep_exclude")),
        use_regex=_bool_arg(args, "use_regex"),
    )
    # Validate everything before touching the cluster.
    since = parse_since(since_raw)
    compiled = validate_filter_spec(spec)

    req = LogRequest(
        namespace=namespace,
        pod=pod,
        container=container,
        tail_lines=max_lines,
        since=since,
        previous=previous,
    )
    raw = get_k8s_provider(config).read_pod_log(req, context=context)

    kept = [line for line in split_lines(raw) if compiled.keep(line)]
    logs = "\n".join(kept)
    truncated = False
    if config.max_log_chars and len(logs) > config.max_log_chars:
        logs = logs[-config.max_log_chars :]
        truncated = True

    metadata: Dict[str, Any] = {
        "total_lines": len(raw.split("\n")),
        "matching_lines": count_matching_lines(raw, spec),
        "filtered": spec.is_filtering,
        "since": since_raw,
        "previous": previous,
        "use_regex": spec.use_regex,
        "grep_include": list(spec.include),
        "grep_exclude": list(spec.exclude),
    }
    if truncated:
        metadata["truncated"] = True
    return {
        "namespace": namespace,
        "pod": pod,
        "container": container or "",
        "logs": logs,
        "metadata": metadata,
    }


def _get_pod_containers(args: Dict[str, Any], config: ServerConfig) -> Dict[str, Any]:
    pod = _str_arg(args, "name") or _str_arg(args, "pod_name")
    namespace = _str_arg(args, "namespace") or (config.namespace or "")
    _require(name=pod, namespace=namespace)
    containers = get_k8s_provider(config).get_pod_containers(
        namespace, pod, context=_str_arg(args, "context") or None
    )
    return {"containers": containers}


# --------------------
# metrics
# --------------------


def _metrics_page(items: List[Any], args: Dict[str, Any], *, kind: str, namespace: str) -> Dict[str, Any]:
    ordered = sort_newest_first(items)
    limit = _int_arg(args, "limit") or 0
    if limit <= 0:
        return {"count": len(ordered), "items": [it.to_dict() for it in ordered]}

    page = paginate(ordered, limit, _str_arg(args, "continue"), kind=kind, namespace=namespace)
    out: Dict[str, Any] = {"count": len(page.items), "items": [it.to_dict() for it in page.items]}
    if page.continue_token:
        out["continue"] = page.continue_token
    return out


def _get_node_metrics(args: Dict[str, Any], config: ServerConfig) -> Dict[str, Any]:
    k8s = get_k8s_provider(config)
    context = _str_arg(args, "context") or None
    node_name = _str_arg(args, "node_name")
    if node_name:
        return NodeMetricsItem.from_raw(k8s.get_node_metrics(node_name, context=context)).to_dict()

    items = parse_list_items(k8s.list_node_metrics(context=context), "node_metrics")
    result: Dict[str, Any] = {"kind": "NodeMetricsList", "apiVersion": METRICS_API_VERSION}
    result.update(_metrics_page(items, args, kind="node", namespace=""))
    return result


def _get_pod_metrics(args: Dict[str, Any], config: ServerConfig) -> Dict[str, Any]:
    k8s = get_k8s_provider(config)
    context = _str_arg(args, "context") or None
    namespace = _str_arg(args, "namespace")
    pod_name = _str_arg(args, "pod_name")
    if pod_name:
        _require(namespace=namespace)
        return PodMetricsItem.from_raw(k8s.get_pod_metrics(namespace, pod_name, context=context)).to_dict()

    items = parse_list_items(k8s.list_pod_metrics(namespace=namespace or None, context=context), "pod_metrics")
    result: Dict[str, Any] = {"kind": "PodMetricsList", "apiVersion": METRICS_API_VERSION, "namespace": namespace}
    result.update(_metrics_page(items, args, kind="pod", namespace=namespace))
    return result


# --------------------
# utils
# --------------------


def _encode_base64(args: Dict[str, Any], config: ServerConfig) -> Dict[str, Any]:
    data = str(args.get("data") or "")
    _require(data=data)
    return {"original": data, "encoded": base64.b64encode(data.encode("utf-8")).decode("ascii")}


def _decode_base64(args: Dict[str, Any], config: ServerConfig) -> Dict[str, Any]:
    data = str(args.get("data") or "").strip()
    _require(data=data)
    try:
        decoded = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise _ArgError("invalid_base64") from None
    return {"original": data, "decoded": decoded.decode("utf-8", errors="replace")}


_HANDLERS: Dict[str, Callable[[Dict[str, Any], ServerConfig], Any]] = {
    "list_resources": _list_resources,
    "get_resource": _get_resource,
    "list_api_resources": _list_api_resources,
    "list_contexts": _list_contexts,
    "get_logs": _get_logs,
    "get_pod_containers": _get_pod_containers,
    "get_node_metrics": _get_node_metrics,
    "get_pod_metrics": _get_pod_metrics,
    "encode_base64": _encode_base64,
    "decode_base64": _decode_base64,
}

TOOL_NAMES = tuple(_HANDLERS)


def run_tool(
    tool: str,
    args: Optional[Dict[str, Any]] = None,
    *,
    config: Optional[ServerConfig] = None,
    policy: Optional[ToolPolicy] = None,
) -> ToolResult:
    """
    Execute a single read-only tool call with policy enforcement.

    Never raises for request or cluster failures: errors come back as
    ToolResult(ok=False) with a stable `error` code and a human `detail`.
    """
    tool = (tool or "").strip()
    if not tool:
        return ToolResult(ok=False, error="tool_missing")

    cfg = config or ServerConfig()
    pol = policy or ToolPolicy.from_list(cfg.disabled_tools)
    args = args or {}

    handler = _HANDLERS.get(tool)
    if handler is None:
        logger.warning(f"Unknown tool: {tool}")
        return ToolResult(ok=False, error="unknown_tool")
    if pol.is_disabled(tool):
        logger.warning(f"Tool {tool} disabled by policy")
        return ToolResult(ok=False, error="tool_disabled")

    compact_args = {k: v for k, v in args.items() if k in _LOGGED_ARGS}
    logger.info(f"Tool call: {tool} args={_compact(compact_args)}")

    try:
        return ToolResult(ok=True, result=handler(args, cfg))
    except _ArgError as e:
        logger.warning(f"Tool {tool} rejected: {e.code}")
        return ToolResult(ok=False, error=e.code)
    except KubelensError as e:
        logger.warning(f"Tool {tool} failed: {e.code}: {e.message[:200]}")
        return ToolResult(ok=False, error=e.code, detail=e.message)
    except Exception as e:
        logger.warning(f"Tool {tool} failed: {type(e).__name__}: {str(e)[:200]}")
        return ToolResult(ok=False, error=f"k8s_error:{type(e).__name__}", detail=str(e)[:500])
