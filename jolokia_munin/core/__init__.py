#!/usr/bin/env python3
"""
Jolokia Munin Plugin - Core Module
"""

from .model import (
    EndpointConfig,
    GraphDefinition,
    MetricDefinition,
    TargetConfig
)

from .planner import plan_requests

from .extractor import (
    NodeKind,
    extract_value,
    format_value,
    resolve_path
)

from .renderer import (
    GRAPH_ATTRIBUTES,
    METRIC_ATTRIBUTES,
    MissingGraphTitleError,
    render_config,
    render_values
)

__all__ = [
    # Configuration model
    'EndpointConfig',
    'GraphDefinition',
    'MetricDefinition',
    'TargetConfig',

    # Request planning and value extraction
    'plan_requests',
    'NodeKind',
    'extract_value',
    'format_value',
    'resolve_path',

    # Munin output
    'GRAPH_ATTRIBUTES',
    'METRIC_ATTRIBUTES',
    'MissingGraphTitleError',
    'render_config',
    'render_values'
]
