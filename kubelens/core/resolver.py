"""Resolve human-supplied resource type names to a ResourceIdentifier.

Accepts any name form the API server advertises (plural, singular, kind, short
names) in any letter case, e.g. "pods", "pod", "Pod" and "po" all resolve to
core/v1 pods.

Shared aliases are settled deterministically:
- an explicit API version hint wins whenever an entry for it exists
- otherwise the first entry in catalog (discovery) order wins
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from kubelens.core.errors import ResourceTypeNotFoundError, UpstreamUnavailableError
from kubelens.core.models import ResourceIdentifier, ResourceTypeDescriptor

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 10


def _eligible(catalog: Iterable[ResourceTypeDescriptor], api_version: str) -> Iterable[ResourceTypeDescriptor]:
    for entry in catalog:
        if api_version and entry.api_version != api_version:
            continue
        if entry.is_subresource:
            continue
        yield entry


def build_alias_index(
    catalog: Sequence[ResourceTypeDescriptor], api_version: str = ""
) -> Tuple[Dict[str, ResourceTypeDescriptor], List[str]]:
    """
    Build the lower-cased alias -> descriptor map for one resolution.

    Returns:
        (index, names) where names are every alias seen, in their original case,
        for use in not-found messages.
    """
    index: Dict[str, ResourceTypeDescriptor] = {}
    names: List[str] = []

    for entry in _eligible(catalog, api_version):
        for name in entry.aliases():
            key = name.lower()
            existing = index.get(key)
            if existing is None:
                index[key] = entry
            elif api_version and existing.api_version != api_version and entry.api_version == api_version:
                index[key] = entry
            names.append(name)

    return index, names


def _candidates(names: Iterable[str]) -> Tuple[List[str], int]:
    unique = sorted(set(names))
    if len(unique) > MAX_CANDIDATES:
        return unique[:MAX_CANDIDATES], len(unique) - MAX_CANDIDATES
    return unique, 0


def resolve_resource_type(
    alias: str, api_version: str, catalog: Sequence[ResourceTypeDescriptor]
) -> ResourceIdentifier:
    """
    Resolve `alias` against a discovery catalog.

    Args:
        alias: Any name form of the resource type, case-insensitive.
        api_version: Optional hint such as "v1" or "apps/v1"; "" searches all versions.
        catalog: Ordered descriptors from API discovery. Order is the tie-break when
            no hint is given.

    Raises:
        UpstreamUnavailableError: the catalog is empty (discovery returned nothing).
        ResourceTypeNotFoundError: no entry answers to `alias`.
    """
    if not catalog:
        raise UpstreamUnavailableError("failed to discover resources: discovery returned no API resources")

    api_version = (api_version or "").strip()
    index, names = build_alias_index(catalog, api_version)

    entry = index.get((alias or "").strip().lower())
    if entry is not None:
        return entry.to_identifier()

    candidates, omitted = _candidates(names)
    logger.debug("Resource type %r not found (api_version=%r, %d aliases)", alias, api_version, len(names))
    raise ResourceTypeNotFoundError(alias, api_version, candidates, omitted)


def list_api_resources(catalog: Sequence[ResourceTypeDescriptor]) -> List[ResourceTypeDescriptor]:
    """Top-level resource types (no subresources), sorted by plural name."""
    return sorted((e for e in catalog if not e.is_subresource), key=lambda e: e.name)
