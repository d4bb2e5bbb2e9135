#!/usr/bin/env python3
"""
Jolokia Munin Plugin - Output Renderer
Produces the Munin multigraph protocol lines for config and fetch runs.

See http://guide.munin-monitoring.org/en/latest/reference/plugin.html for the
attribute reference.
"""

from typing import Dict, Any, List

import structlog

from .extractor import ValueStore, extract_value, format_value
from .model import GraphDefinition

logger = structlog.get_logger()


# Recognized graph attributes, in output order
GRAPH_ATTRIBUTES = (
    'graph_title',
    'graph_category',
    'graph_info',
    'host_name',
    'update',
    'update_rate',
    'graph_vlabel',
    'graph_period',
    'graph_scale',
    'graph_printf',
    'graph_height',
    'graph_width',
    'graph_args',
    'graph_order',
    'graph_total',
)

# Recognized field attributes, in output order
METRIC_ATTRIBUTES = (
    'label',
    'type',
    'info',
    'extinfo',
    'cdef',
    'negative',
    'stack',
    'sum',
    'graph',
    'draw',
    'colour',
    'min',
    'max',
    'warning',
    'critical',
    'line',
)


class MissingGraphTitleError(ValueError):
    """Raised when a graph has no graph_title; Munin cannot draw it."""

    def __init__(self, graph_name: str):
        super().__init__(f"Graph '{graph_name}' has no graph_title")
        self.graph_name = graph_name


def _format_attribute(value: Any) -> str:
    # YAML turns yes/no into booleans; Munin wants them back as words
    if isinstance(value, bool):
        return 'yes' if value else 'no'
    return str(value)


def render_config(graphs: Dict[str, GraphDefinition]) -> List[str]:
    """
    Render the config block of every graph.

    All lines are built before returning so a missing title aborts the run
    before anything reaches stdout.

    Args:
        graphs: Graph definitions of one endpoint

    Returns:
        Output lines, each graph terminated by an empty line

    Raises:
        MissingGraphTitleError: If a graph has no graph_title
    """
    lines: List[str] = []

    for graph_name in sorted(graphs):
        graph = graphs[graph_name]
        if not graph.title:
            raise MissingGraphTitleError(graph_name)

        lines.append(f"multigraph {graph_name}")

        for attr in GRAPH_ATTRIBUTES:
            value = graph.attributes.get(attr)
            if value is not None:
                lines.append(f"{attr} {_format_attribute(value)}")

        for metric_name in sorted(graph.metrics):
            metric = graph.metrics[metric_name]
            for attr in METRIC_ATTRIBUTES:
                value = metric.display.get(attr)
                if value is not None:
                    lines.append(f"{metric_name}.{attr} {_format_attribute(value)}")

        lines.append("")

    return lines


def render_values(graphs: Dict[str, GraphDefinition], store: ValueStore) -> List[str]:
    """
    Render the value block of every graph.

    Metrics whose value cannot be resolved from ``store`` are left out.
    """
    lines: List[str] = []

    for graph_name in sorted(graphs):
        graph = graphs[graph_name]
        lines.append(f"multigraph {graph_name}")

        for metric_name in sorted(graph.metrics):
            metric = graph.metrics[metric_name]
            value = extract_value(store, metric.resource, metric.attribute, metric.path)

            if value is None:
                logger.debug("No value for metric",
                             graph=graph_name,
                             metric=metric_name,
                             resource=metric.resource,
                             attribute=metric.attribute,
                             path=metric.path)
                continue

            lines.append(f"{metric_name}.value {format_value(value)}")

        lines.append("")

    return lines
