#!/usr/bin/env python3
"""
Jolokia Munin Plugin - Value Extractor

Resolves a metric's value out of the per-endpoint fetched value store.

Jolokia returns attribute values as decoded JSON: scalars, lists (e.g. array
attributes) and objects (composite data such as ``HeapMemoryUsage``). A metric
picks a scalar out of that tree with a dot-separated path, e.g. ``used`` or
``LastGcInfo.memoryUsageAfterGc.PS Eden Space.used`` or ``threads.0``.
"""

from enum import Enum
from typing import Dict, Any, Optional, List

# The store is keyed by resource, then attribute
ValueStore = Dict[str, Dict[str, Any]]

_MISSING = object()


class NodeKind(Enum):
    """Kind of a node in a fetched value tree."""
    SCALAR = "scalar"       # number, string, bool or null
    SEQUENCE = "sequence"   # JSON array
    MAPPING = "mapping"     # JSON object


def node_kind(value: Any) -> NodeKind:
    if isinstance(value, (list, tuple)):
        return NodeKind.SEQUENCE
    if isinstance(value, dict):
        return NodeKind.MAPPING
    return NodeKind.SCALAR


def split_path(path: Optional[str]) -> List[str]:
    # YAML may hand over a bare index such as ``path: 0`` as an int
    if path is None or path == '':
        return []
    return str(path).split('.')


def resolve_path(value: Any, segments: List[str]) -> Any:
    """
    Walk ``value`` along ``segments``.

    Sequences are indexed by the segment read as a non-negative decimal
    number, mappings by the segment as a key. Scalars cannot be descended.

    Returns:
        The node reached, or ``_MISSING`` if any step fails
    """
    current = value

    for segment in segments:
        kind = node_kind(current)

        if kind is NodeKind.SEQUENCE:
            if not segment.isdecimal():
                return _MISSING
            index = int(segment)
            if index >= len(current):
                return _MISSING
            current = current[index]

        elif kind is NodeKind.MAPPING:
            if segment not in current:
                return _MISSING
            current = current[segment]

        else:
            return _MISSING

    return current


def extract_value(store: ValueStore, resource: str, attribute: str,
                  path: Optional[str] = None) -> Optional[Any]:
    """
    Look up a metric value in the fetched value store.

    Args:
        store: Fetched values of one endpoint, keyed by resource then attribute
        resource: MBean name
        attribute: Attribute name on the MBean
        path: Optional dot-separated path into the attribute value

    Returns:
        The scalar value, or None when nothing resolvable is there
    """
    attributes = store.get(resource)
    if not attributes or attribute not in attributes:
        return None

    result = resolve_path(attributes[attribute], split_path(path))

    if result is _MISSING or result is None or node_kind(result) is not NodeKind.SCALAR:
        return None

    return result


def format_value(value: Any) -> str:
    """Render a scalar for the Munin value protocol."""
    if isinstance(value, bool):
        return '1' if value else '0'
    return str(value)
