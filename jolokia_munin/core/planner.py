#!/usr/bin/env python3
"""
Jolokia Munin Plugin - Request Planner
Collapses the metric definitions of one endpoint into the reads it needs.
"""

from typing import Dict, List

import structlog

from .model import GraphDefinition

logger = structlog.get_logger()


def plan_requests(graphs: Dict[str, GraphDefinition]) -> Dict[str, List[str]]:
    """
    Compute the distinct (resource, attribute) pairs needed by an endpoint.

    Several metrics, possibly in different graphs, may read the same
    attribute of the same MBean (e.g. heap ``used`` and ``committed`` both come
    from ``HeapMemoryUsage``). Each pair appears once in the plan so it is
    fetched once per run.

    Args:
        graphs: All graph definitions of one endpoint

    Returns:
        Mapping of resource name to the sorted list of attribute names to read
    """
    plan: Dict[str, set] = {}

    for graph in graphs.values():
        for metric in graph.metrics.values():
            plan.setdefault(metric.resource, set()).add(metric.attribute)

    logger.debug("Request plan computed",
                 resources=len(plan),
                 attributes=sum(len(attrs) for attrs in plan.values()))

    return {resource: sorted(plan[resource]) for resource in sorted(plan)}
