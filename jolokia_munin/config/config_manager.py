#!/usr/bin/env python3
"""
Jolokia Munin Plugin - Configuration Management
YAML configuration loading, environment substitution and validation.
"""

import os
import re
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Union
from dataclasses import dataclass

import structlog

from ..core.model import EndpointConfig, METRIC_SOURCE_KEYS
from ..core.renderer import GRAPH_ATTRIBUTES, METRIC_ATTRIBUTES

logger = structlog.get_logger()


DEFAULT_CONFIG_PATH = '/etc/munin/jolokia.yml'
CONFIG_PATH_ENV = 'JOLOKIA_MUNIN_CONFIG'

ENDPOINT_DEFAULTS = {
    'timeout': 10,
    'verify_ssl': True,
}

ENDPOINT_KEYS = {'url', 'user', 'password', 'target', 'timeout', 'verify_ssl', 'graphs'}

# Endpoint settings that are not strings
TYPED_ENDPOINT_KEYS = ('timeout', 'verify_ssl')


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    path: str                    # Configuration path where error occurred
    message: str                 # Error message
    severity: str = "error"      # error, warning
    suggestion: Optional[str] = None  # Suggested fix

    def __str__(self) -> str:
        text = f"{self.path}: {self.message}"
        if self.suggestion:
            text += f" ({self.suggestion})"
        return text


def resolve_config_path(config_path: Optional[str] = None) -> Path:
    """Explicit path, else $JOLOKIA_MUNIN_CONFIG, else the default location."""
    return Path(config_path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)


class ConfigManager:
    """
    Configuration management for the Jolokia Munin plugin.

    The configuration file is a YAML list of endpoints. Loading:
    - parses YAML
    - substitutes ${VAR_NAME} and ${VAR_NAME:default} in string values
    - applies endpoint defaults
    - validates the structure, collecting every problem before failing
    """

    def __init__(self, config_path: Union[str, Path]):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        self.config: List[Dict[str, Any]] = []
        self.validation_errors: List[ConfigValidationError] = []

        logger.debug("ConfigManager initialized", config_path=str(self.config_path))

    def load_config(self) -> bool:
        """
        Load configuration from file with validation.

        Returns:
            True if loading successful, False otherwise
        """
        self.validation_errors.clear()

        try:
            logger.debug("Loading configuration", config_path=str(self.config_path))

            if not self.config_path.exists():
                logger.error("Configuration file not found", path=str(self.config_path))
                return False

            with open(self.config_path, 'r') as f:
                raw_config = yaml.safe_load(f)

            if not raw_config:
                logger.error("Configuration file is empty or invalid",
                             path=str(self.config_path))
                return False

            self.config = self._substitute_environment_variables(raw_config)
            self._apply_defaults()
            self._coerce_endpoint_types()

            if not self.validate():
                logger.error("Configuration validation failed",
                             errors=[str(e) for e in self.errors])
                return False

            for warning in self.warnings:
                logger.warning("Configuration warning", detail=str(warning))

            logger.debug("Configuration loaded successfully", endpoints=len(self.config))
            return True

        except yaml.YAMLError as e:
            logger.error("YAML parsing error", error=str(e))
            return False
        except OSError as e:
            logger.error("Error reading configuration", error=str(e))
            return False

    @property
    def errors(self) -> List[ConfigValidationError]:
        return [e for e in self.validation_errors if e.severity == 'error']

    @property
    def warnings(self) -> List[ConfigValidationError]:
        return [e for e in self.validation_errors if e.severity == 'warning']

    def get_endpoints(self) -> List[EndpointConfig]:
        """
        Get the loaded endpoints.

        Returns:
            Endpoint configurations in file order
        """
        return [EndpointConfig.from_dict(data, index=i) for i, data in enumerate(self.config)]

    def export_config(self, include_sensitive: bool = False) -> str:
        """
        Render the effective configuration as YAML.

        Args:
            include_sensitive: Whether to include passwords in clear text

        Returns:
            YAML document
        """
        config_to_export = self.config
        if not include_sensitive:
            config_to_export = self._mask_sensitive_values(config_to_export)

        return yaml.safe_dump(config_to_export, default_flow_style=False,
                              indent=2, sort_keys=False)

    def validate(self) -> bool:
        """
        Validate the loaded configuration.

        Returns:
            True if configuration is valid, False otherwise
        """
        self.validation_errors.clear()

        if not isinstance(self.config, list) or not self.config:
            self.validation_errors.append(ConfigValidationError(
                path='<root>',
                message='Configuration must be a non-empty list of endpoints'
            ))
            return False

        for index, endpoint in enumerate(self.config):
            self._validate_endpoint(f'[{index}]', endpoint)

        return len(self.errors) == 0

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    def _substitute_environment_variables(self, config: Any) -> Any:
        """
        Substitute environment variables in configuration values.

        Supports ${VAR_NAME} and ${VAR_NAME:default_value} syntax.

        Args:
            config: Parsed configuration

        Returns:
            Configuration with environment variables substituted
        """
        def replace_env_var(match):
            var_expr = match.group(1)
            if ':' in var_expr:
                var_name, default_value = var_expr.split(':', 1)
                return os.getenv(var_name.strip(), default_value.strip())

            env_value = os.getenv(var_expr.strip())
            if env_value is None:
                logger.warning("Environment variable not found",
                               variable=var_expr.strip())
                return match.group(0)  # Return original if not found
            return env_value

        def substitute_value(value):
            if isinstance(value, str):
                return re.sub(r'\$\{([^}]+)\}', replace_env_var, value)
            elif isinstance(value, dict):
                return {k: substitute_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [substitute_value(item) for item in value]
            else:
                return value

        return substitute_value(config)

    def _apply_defaults(self) -> None:
        """Fill in endpoint defaults; values from the file take precedence."""
        if not isinstance(self.config, list):
            return

        self.config = [
            {**ENDPOINT_DEFAULTS, **endpoint} if isinstance(endpoint, dict) else endpoint
            for endpoint in self.config
        ]

    def _coerce_endpoint_types(self) -> None:
        """
        Re-read substituted endpoint settings with YAML typing.

        Environment substitution always yields strings, so
        ``timeout: ${JOLOKIA_TIMEOUT:5}`` or ``verify_ssl: ${VERIFY:false}``
        need to be turned back into a number or boolean.
        """
        if not isinstance(self.config, list):
            return

        for endpoint in self.config:
            if not isinstance(endpoint, dict):
                continue
            for key in TYPED_ENDPOINT_KEYS:
                value = endpoint.get(key)
                if isinstance(value, str):
                    try:
                        endpoint[key] = yaml.safe_load(value)
                    except yaml.YAMLError as e:
                        # Left as a string; validation reports it
                        logger.debug("Cannot parse endpoint setting", setting=key, error=str(e))

    def _check_name_collisions(self, path: str, section: Dict[Any, Any]) -> None:
        # Graph and field names are used as strings; 1 and '1' would clash
        seen = set()
        for name in section:
            if str(name) in seen:
                self.validation_errors.append(ConfigValidationError(
                    path=f'{path}.{name}',
                    message='Name is defined more than once'
                ))
            seen.add(str(name))

    def _validate_endpoint(self, path: str, endpoint: Any) -> None:
        if not isinstance(endpoint, dict):
            self.validation_errors.append(ConfigValidationError(
                path=path,
                message='Endpoint configuration must be a mapping'
            ))
            return

        url = endpoint.get('url')
        if not url or not isinstance(url, str):
            self.validation_errors.append(ConfigValidationError(
                path=f'{path}.url',
                message='Endpoint url is required',
                suggestion='e.g. http://localhost:8080/jolokia'
            ))

        timeout = endpoint.get('timeout')
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            self.validation_errors.append(ConfigValidationError(
                path=f'{path}.timeout',
                message='timeout must be a positive number of seconds'
            ))

        if not isinstance(endpoint.get('verify_ssl'), bool):
            self.validation_errors.append(ConfigValidationError(
                path=f'{path}.verify_ssl',
                message='verify_ssl must be true or false'
            ))

        target = endpoint.get('target')
        if target is not None and (not isinstance(target, dict) or not target.get('url')):
            self.validation_errors.append(ConfigValidationError(
                path=f'{path}.target',
                message='Proxy target must be a mapping with a url'
            ))

        for key in endpoint:
            if key not in ENDPOINT_KEYS:
                self.validation_errors.append(ConfigValidationError(
                    path=f'{path}.{key}',
                    message='Unknown endpoint setting is ignored',
                    severity='warning'
                ))

        graphs = endpoint.get('graphs')
        if not isinstance(graphs, dict) or not graphs:
            self.validation_errors.append(ConfigValidationError(
                path=f'{path}.graphs',
                message='Endpoint must define at least one graph'
            ))
            return

        self._check_name_collisions(f'{path}.graphs', graphs)

        for graph_name, graph in graphs.items():
            self._validate_graph(f'{path}.graphs.{graph_name}', graph)

    def _validate_graph(self, path: str, graph: Any) -> None:
        if not isinstance(graph, dict):
            self.validation_errors.append(ConfigValidationError(
                path=path,
                message='Graph definition must be a mapping'
            ))
            return

        if not graph.get('graph_title'):
            self.validation_errors.append(ConfigValidationError(
                path=f'{path}.graph_title',
                message='Graph title is required'
            ))

        for key in graph:
            if key != 'metrics' and key not in GRAPH_ATTRIBUTES:
                self.validation_errors.append(ConfigValidationError(
                    path=f'{path}.{key}',
                    message='Unknown graph attribute is ignored',
                    severity='warning'
                ))

        metrics = graph.get('metrics')
        if not isinstance(metrics, dict) or not metrics:
            self.validation_errors.append(ConfigValidationError(
                path=f'{path}.metrics',
                message='Graph must define at least one metric'
            ))
            return

        self._check_name_collisions(f'{path}.metrics', metrics)

        for metric_name, metric in metrics.items():
            metric_path = f'{path}.metrics.{metric_name}'

            if not isinstance(metric, dict):
                self.validation_errors.append(ConfigValidationError(
                    path=metric_path,
                    message='Metric definition must be a mapping'
                ))
                continue

            for field in ('resource', 'attribute'):
                value = metric.get(field)
                if not value:
                    self.validation_errors.append(ConfigValidationError(
                        path=f'{metric_path}.{field}',
                        message=f'Metric {field} is required'
                    ))
                elif not isinstance(value, str):
                    self.validation_errors.append(ConfigValidationError(
                        path=f'{metric_path}.{field}',
                        message=f'Metric {field} must be a string',
                        suggestion='One metric reads exactly one attribute'
                    ))

            path_value = metric.get('path')
            if path_value is not None and (isinstance(path_value, bool)
                                           or not isinstance(path_value, (str, int))):
                self.validation_errors.append(ConfigValidationError(
                    path=f'{metric_path}.path',
                    message='Metric path must be a dot-separated string'
                ))

            for key in metric:
                if key not in METRIC_SOURCE_KEYS and key not in METRIC_ATTRIBUTES:
                    self.validation_errors.append(ConfigValidationError(
                        path=f'{metric_path}.{key}',
                        message='Unknown metric attribute is ignored',
                        severity='warning'
                    ))

    def _mask_sensitive_values(self, config: Any) -> Any:
        """
        Mask sensitive configuration values.

        Args:
            config: Configuration data

        Returns:
            Copy of the configuration with sensitive values masked
        """
        sensitive_keys = {'password', 'passwd', 'token', 'secret'}

        def mask(data):
            if isinstance(data, dict):
                result = {}
                for k, v in data.items():
                    if any(sensitive in str(k).lower() for sensitive in sensitive_keys):
                        result[k] = "***MASKED***" if v else v
                    else:
                        result[k] = mask(v)
                return result
            elif isinstance(data, list):
                return [mask(item) for item in data]
            else:
                return data

        return mask(config)
