"""
Configuration package for wpresolve.

This package loads the tool's own settings and the resolve options of a
project's webpack configuration.
"""

from .parser import (
    SettingsParser,
    SettingsParseResult,
    ConfigurationError,
    load_settings
)
from .loader import (
    ConfigSource,
    StaticValue,
    Factory,
    NodeConfigEvaluator,
    ConfigLoader,
    load_resolve_options
)

__all__ = [
    'SettingsParser',
    'SettingsParseResult',
    'ConfigurationError',
    'load_settings',
    'ConfigSource',
    'StaticValue',
    'Factory',
    'NodeConfigEvaluator',
    'ConfigLoader',
    'load_resolve_options'
]
