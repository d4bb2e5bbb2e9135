#!/usr/bin/env python3
"""
Jolokia Munin Plugin - Main Application Entry Point
Munin multigraph plugin reporting JMX attributes read through Jolokia.

Munin runs the plugin as ``jolokia-munin config`` to learn the graphs and as
``jolokia-munin`` to collect values.
"""

import asyncio
import sys
import os
import argparse
import logging
from typing import List, Optional, TextIO

import structlog

from .config.config_manager import ConfigManager, resolve_config_path, DEFAULT_CONFIG_PATH, CONFIG_PATH_ENV
from .client.jolokia_client import JolokiaClient, JolokiaError
from .core.planner import plan_requests
from .core.renderer import MissingGraphTitleError, render_config, render_values

# stdout carries the Munin protocol, so logs go to stderr
logging.basicConfig(
    format="%(message)s",
    stream=sys.stderr,
    level=logging.WARNING,
)

logger = structlog.get_logger()


def configure_logging(log_level: str = "WARNING") -> None:
    """
    Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    level = getattr(logging, log_level.upper(), logging.WARNING)
    logging.getLogger().setLevel(level)

    # Readable output for debug runs (munin-run --debug), JSON otherwise
    renderer = structlog.dev.ConsoleRenderer() if level == logging.DEBUG \
        else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


configure_logging()


class JolokiaMuninPlugin:
    """
    One plugin run.

    Loads the configuration, then for each endpoint in order plans the reads,
    fetches them and prints the requested Munin blocks.
    """

    def __init__(self, config_path: str, client: Optional[JolokiaClient] = None,
                 stdout: Optional[TextIO] = None):
        """
        Initialize the plugin.

        Args:
            config_path: Path to configuration file
            client: Jolokia client (a default one is created if omitted)
            stdout: Stream receiving the Munin protocol output
        """
        self.config_manager = ConfigManager(config_path)
        self.client = client or JolokiaClient()
        self.stdout = stdout if stdout is not None else sys.stdout

    def _emit(self, lines: List[str]) -> None:
        for line in lines:
            print(line, file=self.stdout)

    async def run(self, mode: Optional[str] = None) -> int:
        """
        Execute a plugin run.

        Args:
            mode: ``config`` to print graph configuration before values,
                  anything else to print values only

        Returns:
            Process exit code
        """
        if not self.config_manager.load_config():
            for error in self.config_manager.errors:
                logger.error("Invalid configuration", detail=str(error))
            return 1

        endpoints = self.config_manager.get_endpoints()

        if mode == 'config':
            try:
                config_lines = [
                    line for endpoint in endpoints for line in render_config(endpoint.graphs)
                ]
            except MissingGraphTitleError as e:
                logger.error("Invalid configuration", error=str(e), graph=e.graph_name)
                return 1
            self._emit(config_lines)

        exit_code = 0

        for endpoint in endpoints:
            plan = plan_requests(endpoint.graphs)

            try:
                store = await self.client.fetch(endpoint, plan)
            except JolokiaError as e:
                logger.error("Failed to fetch endpoint values",
                             endpoint=endpoint.index,
                             url=endpoint.url,
                             error=str(e))
                exit_code = 1
                continue

            self._emit(render_values(endpoint.graphs, store))

        return exit_code

    def dump_config(self) -> int:
        """Print the effective configuration with secrets masked."""
        if not self.config_manager.load_config():
            for error in self.config_manager.errors:
                logger.error("Invalid configuration", detail=str(error))
            return 1

        self.stdout.write(self.config_manager.export_config())
        return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Munin plugin reporting JMX attributes through Jolokia",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  %(prog)s config
  %(prog)s --config /etc/munin/wildfly.yml
  %(prog)s --dump-config

The configuration path defaults to ${CONFIG_PATH_ENV}, then {DEFAULT_CONFIG_PATH}.
        """
    )

    parser.add_argument(
        'mode',
        nargs='?',
        help="Munin command; 'config' prints the graph configuration before values"
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to configuration file'
    )

    parser.add_argument(
        '--log-level', '-l',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Set logging level (default: WARNING, DEBUG when MUNIN_DEBUG=1)'
    )

    parser.add_argument(
        '--dump-config',
        action='store_true',
        help='Print the effective configuration with secrets masked and exit'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'jolokia-munin v{__import__("jolokia_munin").__version__}'
    )

    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the plugin.
    """
    args = parse_args(argv)

    log_level = args.log_level
    if not log_level:
        log_level = 'DEBUG' if os.getenv('MUNIN_DEBUG') == '1' else 'WARNING'
    configure_logging(log_level)

    config_path = resolve_config_path(args.config)
    logger.debug("Starting plugin run", config_path=str(config_path), mode=args.mode)

    plugin = JolokiaMuninPlugin(str(config_path))

    if args.dump_config:
        return plugin.dump_config()

    return await plugin.run(args.mode)


def cli_main():
    """CLI entry point that handles async main function."""
    return asyncio.run(main())


if __name__ == '__main__':
    sys.exit(cli_main())
