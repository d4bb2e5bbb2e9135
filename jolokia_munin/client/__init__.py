#!/usr/bin/env python3
"""
Jolokia Munin Plugin - Client Module
"""

from .jolokia_client import JolokiaClient, JolokiaError

__all__ = ['JolokiaClient', 'JolokiaError']
