#!/usr/bin/env python3
"""
Jolokia Munin Plugin - Jolokia Client

Reads MBean attributes through a Jolokia agent (JMX over JSON/HTTP).

All reads planned for an endpoint are sent as one bulk request: a JSON array
with one ``read`` request per (MBean, attribute) pair.
Jolokia answers with an array of responses in request order.
"""

import asyncio
import ssl
from typing import Dict, List, Any, Optional, Tuple

import aiohttp
import structlog

from ..core.extractor import ValueStore
from ..core.model import EndpointConfig

logger = structlog.get_logger()


class JolokiaError(Exception):
    """Raised when the Jolokia endpoint cannot be queried at all."""


class JolokiaClient:
    """
    Jolokia client for fetching MBean attributes.

    Features:
    - Bulk read of every planned (MBean, attribute) pair in one HTTP round trip
    - HTTP basic authentication
    - Proxy mode (``target``) for JMX services without an agent
    - Per-attribute failures reported by Jolokia are logged and skipped
    """

    def __init__(self, user_agent: str = "jolokia-munin"):
        self.user_agent = user_agent

    @staticmethod
    def _pairs(plan: Dict[str, List[str]]) -> List[Tuple[str, str]]:
        return [(resource, attribute)
                for resource, attributes in plan.items()
                for attribute in attributes]

    def build_requests(self, endpoint: EndpointConfig,
                       plan: Dict[str, List[str]]) -> List[Dict[str, Any]]:
        """
        Build the bulk request payload for a request plan.

        Every (MBean, attribute) pair gets its own ``read`` so that an unknown
        attribute only fails its own entry, not its siblings on the same MBean.
        """
        requests = []

        for resource, attribute in self._pairs(plan):
            request: Dict[str, Any] = {
                'type': 'read',
                'mbean': resource,
                'attribute': attribute,
            }
            if endpoint.target:
                request['target'] = endpoint.target.to_request()
            requests.append(request)

        return requests

    async def fetch(self, endpoint: EndpointConfig,
                    plan: Dict[str, List[str]]) -> ValueStore:
        """
        Fetch all planned attributes of an endpoint.

        Args:
            endpoint: Endpoint to query
            plan: Mapping of MBean name to attribute names

        Returns:
            Fetched value store keyed by MBean, then attribute. Pairs whose
            read failed on the Jolokia side are absent.

        Raises:
            JolokiaError: On connection, HTTP or protocol failure
        """
        if not plan:
            return {}

        log = logger.bind(endpoint=endpoint.index, url=endpoint.url)
        payload = self.build_requests(endpoint, plan)

        log.debug("Sending Jolokia bulk read", requests=len(payload))

        try:
            async with self._create_session(endpoint) as session:
                async with session.post(endpoint.url, json=payload) as response:
                    status = response.status
                    if status == 200:
                        body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise JolokiaError(f"Request to {endpoint.url} failed: {e!r}") from e
        except ValueError as e:
            raise JolokiaError(f"Invalid JSON from {endpoint.url}: {e}") from e

        if status != 200:
            raise JolokiaError(f"Request to {endpoint.url} returned HTTP {status}")

        return self.parse_responses(plan, body, log)

    def parse_responses(self, plan: Dict[str, List[str]], body: Any,
                        log: Optional[Any] = None) -> ValueStore:
        """
        Turn a bulk response into a fetched value store.

        Args:
            plan: The plan the request was built from
            body: Decoded JSON response, one entry per (MBean, attribute) pair
            log: Bound logger for context

        Returns:
            Fetched value store
        """
        log = log or logger
        pairs = self._pairs(plan)

        # A malformed bulk request is answered with a single error object
        if isinstance(body, dict):
            raise JolokiaError(f"Jolokia rejected request: {body.get('error', body)}")

        if not isinstance(body, list) or len(body) != len(pairs):
            raise JolokiaError("Jolokia response does not match request count")

        store: ValueStore = {}

        for (resource, attribute), entry in zip(pairs, body):
            if not isinstance(entry, dict) or entry.get('status') != 200:
                log.warning("Attribute read failed",
                            resource=resource,
                            attribute=attribute,
                            status=entry.get('status') if isinstance(entry, dict) else None,
                            error=entry.get('error') if isinstance(entry, dict) else entry)
                continue

            store.setdefault(resource, {})[attribute] = entry.get('value')

        log.debug("Jolokia bulk read complete",
                  attributes=sum(len(attrs) for attrs in store.values()))
        return store

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    def _create_session(self, endpoint: EndpointConfig) -> aiohttp.ClientSession:
        """
        Create the HTTP session for one endpoint.

        Configures timeout, SSL verification and basic auth.
        """
        ssl_context = ssl.create_default_context()
        if not endpoint.verify_ssl:
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE

        auth = None
        if endpoint.user:
            auth = aiohttp.BasicAuth(endpoint.user, endpoint.password or '')

        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=endpoint.timeout),
            connector=aiohttp.TCPConnector(ssl=ssl_context),
            auth=auth,
            headers={'User-Agent': self.user_agent},
        )
