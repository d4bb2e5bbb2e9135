#!/usr/bin/env python3
"""
Jolokia Munin Plugin - Configuration Model
Typed view of the endpoint/graph/metric definitions loaded from YAML.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional


# Keys of a metric definition that drive fetching rather than display
METRIC_SOURCE_KEYS = ('resource', 'attribute', 'path')


@dataclass
class MetricDefinition:
    """
    A single data series within a graph.

    The source triple (resource, attribute, path) selects the value on the
    remote endpoint; everything else is passed through to Munin as display
    attributes (label, type, warning, ...).
    """
    name: str                                  # Munin field name
    resource: str                              # MBean name, e.g. "java.lang:type=Memory"
    attribute: str                             # Attribute read on the MBean
    path: Optional[str] = None                 # Dot-separated walk into the attribute value
    display: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'MetricDefinition':
        return cls(
            name=name,
            resource=data.get('resource'),
            attribute=data.get('attribute'),
            path=data.get('path'),
            display={k: v for k, v in data.items() if k not in METRIC_SOURCE_KEYS},
        )


@dataclass
class GraphDefinition:
    """A named Munin graph: graph-level display attributes plus its metrics."""
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    metrics: Dict[str, MetricDefinition] = field(default_factory=dict)

    @property
    def title(self) -> Optional[str]:
        return self.attributes.get('graph_title')

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'GraphDefinition':
        metrics = {
            str(metric_name): MetricDefinition.from_dict(str(metric_name), metric_data or {})
            for metric_name, metric_data in (data.get('metrics') or {}).items()
        }
        return cls(
            name=name,
            attributes={k: v for k, v in data.items() if k != 'metrics'},
            metrics=metrics,
        )


@dataclass
class TargetConfig:
    """Remote JMX service reached through a Jolokia agent running in proxy mode."""
    url: str                                   # JSR-160 service URL
    user: Optional[str] = None
    password: Optional[str] = None

    def to_request(self) -> Dict[str, str]:
        target = {'url': self.url}
        if self.user is not None:
            target['user'] = self.user
        if self.password is not None:
            target['password'] = self.password
        return target


@dataclass
class EndpointConfig:
    """
    One Jolokia endpoint and the graphs fed from it.

    Endpoints have no identity beyond their position in the configuration
    list; ``index`` records that position for log context.
    """
    url: str                                   # Jolokia agent URL
    graphs: Dict[str, GraphDefinition] = field(default_factory=dict)
    user: Optional[str] = None                 # HTTP basic auth user
    password: Optional[str] = None             # HTTP basic auth password
    target: Optional[TargetConfig] = None      # Proxy-mode target
    timeout: float = 10                        # Total request timeout (seconds)
    verify_ssl: bool = True                    # Verify TLS certificates
    index: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> 'EndpointConfig':
        """
        Build an endpoint from an already validated configuration mapping.

        Args:
            data: Endpoint section of the configuration
            index: Position of the endpoint in the configuration list

        Returns:
            EndpointConfig instance
        """
        target_data = data.get('target')
        target = None
        if target_data:
            target = TargetConfig(
                url=target_data['url'],
                user=target_data.get('user'),
                password=target_data.get('password'),
            )

        graphs = {
            str(graph_name): GraphDefinition.from_dict(str(graph_name), graph_data or {})
            for graph_name, graph_data in (data.get('graphs') or {}).items()
        }

        return cls(
            url=data['url'],
            graphs=graphs,
            user=data.get('user'),
            password=data.get('password'),
            target=target,
            timeout=data.get('timeout', 10),
            verify_ssl=data.get('verify_ssl', True),
            index=index,
        )
