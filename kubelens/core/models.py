"""Canonical value types shared by the resolver, paginator and log filter.

Design note:
- Values handed between components are frozen; a cursor or filter is never
  mutated after it is built, each call produces a new one.
- Discovery payloads are parsed into ResourceTypeDescriptor once, at the
  provider boundary. Nothing downstream reads raw discovery dicts.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CursorKind = Literal["node", "pod"]


class BaseModelStrict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class BaseModelFrozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


def join_api_version(group: str, version: str) -> str:
    """`apps` + `v1` -> `apps/v1`; the core group renders as the bare version."""
    return f"{group}/{version}" if group else version


def split_api_version(api_version: str) -> tuple[str, str]:
    """Inverse of join_api_version: `apps/v1` -> (`apps`, `v1`), `v1` -> (``, `v1`)."""
    if "/" in api_version:
        group, _, version = api_version.partition("/")
        return group, version
    return "", api_version


class ResourceTypeDescriptor(BaseModelFrozen):
    """One queryable resource type as advertised by API discovery."""

    group: str = ""
    version: str
    name: str
    singular_name: str = ""
    kind: str = ""
    short_names: List[str] = Field(default_factory=list)
    namespaced: bool = False
    verbs: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)

    @property
    def api_version(self) -> str:
        return join_api_version(self.group, self.version)

    @property
    def is_subresource(self) -> bool:
        return "/" in self.name

    def aliases(self) -> List[str]:
        """All non-empty names this type answers to: plural, singular, kind, short names."""
        names = [self.name, self.singular_name, self.kind, *self.short_names]
        return [n for n in names if n]

    def to_identifier(self) -> "ResourceIdentifier":
        return ResourceIdentifier(
            group=self.group, version=self.version, resource=self.name, namespaced=self.namespaced
        )

    @classmethod
    def from_discovery(cls, group_version: str, raw: Dict[str, Any]) -> "ResourceTypeDescriptor":
        """Parse one entry of an APIResourceList (`/api/v1`, `/apis/<g>/<v>`)."""
        group, version = split_api_version(group_version)
        return cls(
            group=group,
            version=version,
            name=str(raw.get("name") or ""),
            singular_name=str(raw.get("singularName") or ""),
            kind=str(raw.get("kind") or ""),
            short_names=[str(s) for s in (raw.get("shortNames") or [])],
            namespaced=bool(raw.get("namespaced", False)),
            verbs=[str(v) for v in (raw.get("verbs") or [])],
            categories=[str(c) for c in (raw.get("categories") or [])],
        )


class ResourceIdentifier(BaseModelFrozen):
    """Fully-qualified resource type (group/version/resource + scope)."""

    group: str = ""
    version: str
    resource: str
    namespaced: bool = False

    @property
    def api_version(self) -> str:
        return join_api_version(self.group, self.version)

    def path(self, *, namespace: Optional[str] = None, name: Optional[str] = None) -> str:
        """REST path for list/get calls, e.g. `/apis/apps/v1/namespaces/ns/deployments/web`."""
        base = f"/apis/{self.group}/{self.version}" if self.group else f"/api/{self.version}"
        if self.namespaced and namespace:
            base += f"/namespaces/{namespace}"
        base += f"/{self.resource}"
        if name:
            base += f"/{name}"
        return base


class PaginationCursor(BaseModelFrozen):
    offset: int = Field(default=0, ge=0)
    kind: CursorKind
    namespace: str = ""


class FilterSpec(BaseModelFrozen):
    """Grep-like line filter: include-any, then exclude-any."""

    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    use_regex: bool = False

    @property
    def is_filtering(self) -> bool:
        return bool(self.include or self.exclude)


class SinceSpec(BaseModelFrozen):
    """How far back a log query reaches; absolute instant XOR relative seconds."""

    since_time: Optional[datetime] = None
    since_seconds: Optional[int] = None

    @field_validator("since_time")
    @classmethod
    def _ensure_timezone_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def _exclusive(self) -> "SinceSpec":
        if self.since_time is not None and self.since_seconds is not None:
            raise ValueError("since_time and since_seconds are mutually exclusive")
        return self

    @property
    def is_empty(self) -> bool:
        return self.since_time is None and self.since_seconds is None


class LogRequest(BaseModelStrict):
    """Options forwarded to the log-fetch collaborator."""

    namespace: str
    pod: str
    container: Optional[str] = None
    tail_lines: Optional[int] = None
    since: SinceSpec = Field(default_factory=SinceSpec)
    previous: bool = False


class KubeContext(BaseModelStrict):
    name: str
    cluster: str = ""
    user: str = ""
    namespace: Optional[str] = None
    current: bool = False
