import io

import pytest
import yaml

from jolokia_munin.client.jolokia_client import JolokiaError
from jolokia_munin.main import JolokiaMuninPlugin, main


class StubClient:
    """Returns canned stores per endpoint URL; an exception entry is raised."""

    def __init__(self, stores):
        self.stores = stores
        self.plans = []

    async def fetch(self, endpoint, plan):
        self.plans.append((endpoint.url, plan))
        result = self.stores.get(endpoint.url, {})
        if isinstance(result, Exception):
            raise result
        return result


def _run_plugin(config_path, client):
    stdout = io.StringIO()
    plugin = JolokiaMuninPlugin(str(config_path), client=client, stdout=stdout)
    return plugin, stdout


@pytest.mark.asyncio
async def test_value_run(wildfly_config_path, wildfly_store):
    client = StubClient({'http://localhost:8080/jolokia': wildfly_store})
    plugin, stdout = _run_plugin(wildfly_config_path, client)

    assert await plugin.run() == 0
    assert stdout.getvalue() == (
        "multigraph wildfly_memory\n"
        "heap_committed.value 134217728\n"
        "heap_used.value 51234567\n"
        "nonheap_committed.value 104857600\n"
        "nonheap_used.value 98765432\n"
        "\n"
        "multigraph wildfly_threads\n"
        "daemon.value 31\n"
        "threads.value 87\n"
        "\n"
    )
    assert client.plans == [('http://localhost:8080/jolokia', {
        'java.lang:type=Memory': ['HeapMemoryUsage', 'NonHeapMemoryUsage'],
        'java.lang:type=Threading': ['DaemonThreadCount', 'ThreadCount'],
    })]


@pytest.mark.asyncio
async def test_config_run_prints_config_then_values(wildfly_config_path, wildfly_store):
    client = StubClient({'http://localhost:8080/jolokia': wildfly_store})
    plugin, stdout = _run_plugin(wildfly_config_path, client)

    assert await plugin.run('config') == 0

    lines = stdout.getvalue().split("\n")
    assert [l for l in lines if l.startswith('multigraph')] == [
        'multigraph wildfly_memory',
        'multigraph wildfly_threads',
        'multigraph wildfly_memory',
        'multigraph wildfly_threads',
    ]
    assert lines[1] == 'graph_title WildFly memory'
    assert 'heap_used.value 51234567' in lines


@pytest.mark.asyncio
async def test_other_modes_print_values_only(wildfly_config_path, wildfly_store):
    client = StubClient({'http://localhost:8080/jolokia': wildfly_store})
    plugin, stdout = _run_plugin(wildfly_config_path, client)

    assert await plugin.run('fetch') == 0
    assert 'graph_title' not in stdout.getvalue()


@pytest.mark.asyncio
async def test_untitled_graph_aborts_without_output(write_config, endpoint_config):
    graphs = {'g': {'metrics': {'m': {'resource': 'r', 'attribute': 'a'}}}}
    client = StubClient({})
    plugin, stdout = _run_plugin(write_config([endpoint_config(graphs=graphs)]), client)

    assert await plugin.run('config') == 1
    assert stdout.getvalue() == ""
    assert client.plans == []


@pytest.mark.asyncio
async def test_transport_failure_skips_only_that_endpoint(write_config, endpoint_config):
    path = write_config([
        endpoint_config(url='http://down/jolokia'),
        endpoint_config(url='http://up/jolokia'),
    ])
    client = StubClient({
        'http://down/jolokia': JolokiaError('connection refused'),
        'http://up/jolokia': {'java.lang:type=Threading': {'ThreadCount': 12}},
    })
    plugin, stdout = _run_plugin(path, client)

    assert await plugin.run() == 1
    assert stdout.getvalue() == "multigraph jvm_threads\nthreads.value 12\n\n"


@pytest.mark.asyncio
async def test_main_with_missing_config(tmp_path, capsys):
    assert await main(['--config', str(tmp_path / 'absent.yml')]) == 1
    assert capsys.readouterr().out == ""


@pytest.mark.asyncio
async def test_main_dump_config(write_config, endpoint_config, capsys):
    path = write_config([endpoint_config(password='hunter2')])

    assert await main(['--config', str(path), '--dump-config']) == 0

    dumped = yaml.safe_load(capsys.readouterr().out)
    assert dumped[0]['password'] == '***MASKED***'
    assert dumped[0]['timeout'] == 10


@pytest.mark.asyncio
async def test_list_valued_attribute_fails_cleanly(write_config, endpoint_config):
    graphs = {'g': {'graph_title': 'G', 'metrics': {
        'heap': {'resource': 'java.lang:type=Memory', 'attribute': ['HeapMemoryUsage']},
    }}}
    client = StubClient({})
    plugin, stdout = _run_plugin(write_config([endpoint_config(graphs=graphs)]), client)

    assert await plugin.run() == 1
    assert stdout.getvalue() == ""
    assert client.plans == []


@pytest.mark.asyncio
async def test_numeric_metric_names_render(write_config):
    path = write_config(
        "- url: http://localhost:8080/jolokia\n"
        "  graphs:\n"
        "    g:\n"
        "      graph_title: G\n"
        "      metrics:\n"
        "        1: {label: one, resource: r, attribute: a}\n"
        "        b: {label: bee, resource: r, attribute: b}\n"
    )
    client = StubClient({'http://localhost:8080/jolokia': {'r': {'a': 1, 'b': 2}}})
    plugin, stdout = _run_plugin(path, client)

    assert await plugin.run('config') == 0
    assert stdout.getvalue() == (
        "multigraph g\n"
        "graph_title G\n"
        "1.label one\n"
        "b.label bee\n"
        "\n"
        "multigraph g\n"
        "1.value 1\n"
        "b.value 2\n"
        "\n"
    )
