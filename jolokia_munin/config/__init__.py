#!/usr/bin/env python3
"""
Jolokia Munin Plugin - Configuration Management Module
"""

from .config_manager import (
    ConfigManager,
    ConfigValidationError,
    DEFAULT_CONFIG_PATH,
    resolve_config_path
)

__all__ = ['ConfigManager', 'ConfigValidationError', 'DEFAULT_CONFIG_PATH', 'resolve_config_path']
