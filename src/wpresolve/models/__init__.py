"""
Data models for wpresolve.

This module contains the structured data used throughout the system.
"""

from .resolve_options import AliasEntry, ResolveOptions
from .settings import ToolSettings

__all__ = ['AliasEntry', 'ResolveOptions', 'ToolSettings']
