"""Shared fixtures for the jolokia-munin test suite."""

from pathlib import Path

import pytest
import yaml

from jolokia_munin.config.config_manager import ConfigManager

WILDFLY_CONFIG = Path(__file__).resolve().parent.parent / 'contrib' / 'wildfly.yml'


@pytest.fixture
def wildfly_config_path(monkeypatch):
    monkeypatch.delenv('JOLOKIA_USER', raising=False)
    monkeypatch.delenv('JOLOKIA_PASSWORD', raising=False)
    return WILDFLY_CONFIG


@pytest.fixture
def wildfly_endpoint(wildfly_config_path):
    manager = ConfigManager(wildfly_config_path)
    assert manager.load_config(), [str(e) for e in manager.validation_errors]
    return manager.get_endpoints()[0]


@pytest.fixture
def wildfly_store():
    """Values as Jolokia returns them for the WildFly example."""
    return {
        'java.lang:type=Memory': {
            'HeapMemoryUsage': {'init': 67108864, 'used': 51234567,
                                'committed': 134217728, 'max': 536870912},
            'NonHeapMemoryUsage': {'init': 7667712, 'used': 98765432,
                                   'committed': 104857600, 'max': -1},
        },
        'java.lang:type=Threading': {
            'ThreadCount': 87,
            'DaemonThreadCount': 31,
        },
    }


@pytest.fixture
def write_config(tmp_path):
    """Write a configuration structure to a YAML file and return its path."""
    def _write(config, name='jolokia.yml'):
        path = tmp_path / name
        with open(path, 'w') as f:
            if isinstance(config, str):
                f.write(config)
            else:
                yaml.safe_dump(config, f)
        return path
    return _write


@pytest.fixture
def endpoint_config():
    """Build a minimal single-graph endpoint section."""
    def _make(url='http://localhost:8080/jolokia', graphs=None, **extra):
        config = {
            'url': url,
            'graphs': graphs or {
                'jvm_threads': {
                    'graph_title': 'Threads',
                    'metrics': {
                        'threads': {
                            'label': 'threads',
                            'resource': 'java.lang:type=Threading',
                            'attribute': 'ThreadCount',
                        }
                    }
                }
            }
        }
        config.update(extra)
        return config
    return _make
