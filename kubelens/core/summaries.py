"""Typed views over raw collection items.

Raw list payloads (dicts from the dynamic REST API or metrics.k8s.io) are converted
exactly once, here, into one of three variants discriminated by `item_type`:

- NodeMetricsItem: metrics.k8s.io NodeMetrics
- PodMetricsItem: metrics.k8s.io PodMetrics
- ResourceSummary: any other object, reduced to apiVersion/kind/metadata

Each variant knows its own sort timestamp so callers can order a collection
newest-first before paginating it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Sequence, TypeVar, Union

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field


def parse_k8s_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC3339 timestamp as found in metadata/metrics; None when absent or malformed."""
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        dt = date_parser.isoparse(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class _Item(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    def sort_time(self) -> Optional[datetime]:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"item_type"}, exclude_none=True)


class ContainerUsage(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    usage: Dict[str, str] = Field(default_factory=dict)


class NodeMetricsItem(_Item):
    item_type: Literal["node_metrics"] = "node_metrics"
    name: str
    timestamp: Optional[str] = None
    window: Optional[str] = None
    usage: Dict[str, str] = Field(default_factory=dict)

    def sort_time(self) -> Optional[datetime]:
        return parse_k8s_timestamp(self.timestamp)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "NodeMetricsItem":
        meta = raw.get("metadata") or {}
        return cls(
            name=str(meta.get("name") or ""),
            timestamp=raw.get("timestamp"),
            window=raw.get("window"),
            usage={str(k): str(v) for k, v in (raw.get("usage") or {}).items()},
        )


class PodMetricsItem(_Item):
    item_type: Literal["pod_metrics"] = "pod_metrics"
    name: str
    namespace: str = ""
    timestamp: Optional[str] = None
    window: Optional[str] = None
    containers: List[ContainerUsage] = Field(default_factory=list)

    def sort_time(self) -> Optional[datetime]:
        return parse_k8s_timestamp(self.timestamp)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "PodMetricsItem":
        meta = raw.get("metadata") or {}
        containers = [
            ContainerUsage(
                name=str(c.get("name") or ""),
                usage={str(k): str(v) for k, v in (c.get("usage") or {}).items()},
            )
            for c in (raw.get("containers") or [])
            if isinstance(c, dict)
        ]
        return cls(
            name=str(meta.get("name") or ""),
            namespace=str(meta.get("namespace") or ""),
            timestamp=raw.get("timestamp"),
            window=raw.get("window"),
            containers=containers,
        )


class ResourceSummary(_Item):
    """Metadata-only projection of an arbitrary object (keeps list responses small)."""

    item_type: Literal["resource"] = "resource"
    api_version: Optional[str] = Field(default=None, alias="apiVersion")
    kind: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    def sort_time(self) -> Optional[datetime]:
        return parse_k8s_timestamp(self.metadata.get("creationTimestamp"))

    @classmethod
    def from_raw(cls, raw: Dict[str, Any], *, api_version: Optional[str] = None, kind: Optional[str] = None):
        # List items often omit apiVersion/kind; fall back to the list's values.
        meta = raw.get("metadata")
        return cls(
            apiVersion=raw.get("apiVersion") or api_version,
            kind=raw.get("kind") or kind,
            metadata=dict(meta) if isinstance(meta, dict) else {},
        )


CollectionItem = Union[NodeMetricsItem, PodMetricsItem, ResourceSummary]
ItemT = TypeVar("ItemT", NodeMetricsItem, PodMetricsItem, ResourceSummary)


def sort_newest_first(items: Sequence[ItemT]) -> List[ItemT]:
    """
    Stable newest-first ordering; items without a usable timestamp go last, in
    their original relative order.
    """
    keyed = [(it.sort_time(), it) for it in items]
    dated = sorted((k for k in keyed if k[0] is not None), key=lambda k: k[0], reverse=True)
    undated = [it for ts, it in keyed if ts is None]
    return [it for _, it in dated] + undated


def parse_list_items(
    payload: Dict[str, Any], item_type: Literal["node_metrics", "pod_metrics", "resource"]
) -> List[CollectionItem]:
    """Convert a raw `*List` payload into typed items."""
    raw_items = [x for x in (payload.get("items") or []) if isinstance(x, dict)]
    if item_type == "node_metrics":
        return [NodeMetricsItem.from_raw(x) for x in raw_items]
    if item_type == "pod_metrics":
        return [PodMetricsItem.from_raw(x) for x in raw_items]

    list_api_version = payload.get("apiVersion")
    list_kind = payload.get("kind") or ""
    item_kind = list_kind[: -len("List")] if list_kind.endswith("List") else None
    return [ResourceSummary.from_raw(x, api_version=list_api_version, kind=item_kind) for x in raw_items]
