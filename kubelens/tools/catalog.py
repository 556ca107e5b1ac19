from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from kubelens.authz.policy import ToolPolicy


@dataclass(frozen=True)
class ToolParam:
    name: str
    description: str
    type: str = "string"
    required: bool = False


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    params: Tuple[ToolParam, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [
                {"name": p.name, "type": p.type, "required": p.required, "description": p.description}
                for p in self.params
            ],
        }


_CONTEXT = ToolParam("context", "Kubernetes context to use (defaults to current context from kubeconfig)")
_CONTINUE = ToolParam("continue", "Continue token for pagination (from previous response)")

TOOL_SPECS: Tuple[ToolSpec, ...] = (
    ToolSpec(
        "list_resources",
        "List any Kubernetes resources by type with optional filtering, sorted newest first when not paginated",
        (
            ToolParam("resource_type", "Resource type, any name form (e.g. pods, deploy, Service)", required=True),
            ToolParam("api_version", "API version hint (e.g. v1, apps/v1)"),
            ToolParam("namespace", "Namespace (defaults to the configured namespace)"),
            _CONTEXT,
            ToolParam("label_selector", "Label selector (e.g. app=web,tier!=db)"),
            ToolParam("field_selector", "Field selector (e.g. status.phase=Running)"),
            ToolParam("limit", "Maximum number of items (server-side pagination)", type="integer"),
            _CONTINUE,
        ),
    ),
    ToolSpec(
        "get_resource",
        "Get a specific Kubernetes resource by type and name",
        (
            ToolParam("resource_type", "Resource type, any name form", required=True),
            ToolParam("name", "Resource name", required=True),
            ToolParam("api_version", "API version hint (e.g. v1, apps/v1)"),
            ToolParam("namespace", "Namespace (required for namespaced resources unless configured)"),
            _CONTEXT,
        ),
    ),
    ToolSpec("list_api_resources", "List the resource types the cluster serves", (_CONTEXT,)),
    ToolSpec("list_contexts", "List kubeconfig contexts, current context first"),
    ToolSpec(
        "get_logs",
        "Get pod logs with grep-like include/exclude filtering, time filtering and previous logs",
        (
            ToolParam("namespace", "Pod namespace (defaults to the configured namespace)"),
            ToolParam("name", "Pod name", required=True),
            ToolParam("container", "Container name (required for multi-container pods)"),
            _CONTEXT,
            ToolParam("max_lines", "Maximum number of lines to retrieve", type="integer"),
            ToolParam("grep_include", "Keep only lines matching any of these comma-separated patterns"),
            ToolParam("grep_exclude", "Drop lines matching any of these comma-separated patterns"),
            ToolParam("use_regex", "Treat grep patterns as regular expressions", type="boolean"),
            ToolParam("since", 'Only logs newer than this: durations like "5m", "2h30m", "1d" or timestamps'),
            ToolParam("previous", "Logs of the previous terminated container instance", type="boolean"),
        ),
    ),
    ToolSpec(
        "get_pod_containers",
        "List containers in a pod for log access",
        (
            ToolParam("namespace", "Pod namespace (defaults to the configured namespace)"),
            ToolParam("name", "Pod name", required=True),
            _CONTEXT,
        ),
    ),
    ToolSpec(
        "get_node_metrics",
        "Get node metrics (CPU and memory usage)",
        (
            ToolParam("node_name", "Specific node (omit for all nodes)"),
            _CONTEXT,
            ToolParam("limit", "Maximum number of node metrics to return (defaults to all)", type="integer"),
            _CONTINUE,
        ),
    ),
    ToolSpec(
        "get_pod_metrics",
        "Get pod metrics (CPU and memory usage)",
        (
            ToolParam("namespace", "Namespace (omit for all namespaces; required with pod_name)"),
            ToolParam("pod_name", "Specific pod"),
            _CONTEXT,
            ToolParam("limit", "Maximum number of pod metrics to return (defaults to all)", type="integer"),
            _CONTINUE,
        ),
    ),
    ToolSpec("encode_base64", "Encode text data to base64", (ToolParam("data", "Text to encode", required=True),)),
    ToolSpec("decode_base64", "Decode base64 data to text", (ToolParam("data", "Base64 to decode", required=True),)),
)


def get_tool_spec(name: str) -> Optional[ToolSpec]:
    for spec in TOOL_SPECS:
        if spec.name == name:
            return spec
    return None


def enabled_tools(policy: Optional[ToolPolicy] = None) -> List[ToolSpec]:
    """Tools left after the policy's disabled list is applied, in catalog order."""
    pol = policy or ToolPolicy()
    return [s for s in TOOL_SPECS if not pol.is_disabled(s.name)]
