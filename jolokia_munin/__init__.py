#!/usr/bin/env python3
"""
Jolokia Munin Plugin
Munin multigraph plugin for JMX attributes exposed through Jolokia.
"""

__version__ = "1.0.0"
__author__ = "Jolokia Munin Developers"

from .core import (
    EndpointConfig,
    GraphDefinition,
    MetricDefinition,
    MissingGraphTitleError,
    extract_value,
    plan_requests,
    render_config,
    render_values
)

from .config import ConfigManager, ConfigValidationError

from .client import JolokiaClient, JolokiaError

__all__ = [
    # Core
    'EndpointConfig',
    'GraphDefinition',
    'MetricDefinition',
    'MissingGraphTitleError',
    'extract_value',
    'plan_requests',
    'render_config',
    'render_values',

    # Configuration
    'ConfigManager',
    'ConfigValidationError',

    # Transport
    'JolokiaClient',
    'JolokiaError',

    # Version info
    '__version__',
    '__author__'
]
