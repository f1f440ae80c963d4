"""
Resolution engine for wpresolve.

This package turns a module request and a base directory into the absolute
path of the file webpack would load.
"""

from .exports import PackageExportsError, map_exports
from .resolver import ResolveError, Resolver, create

__all__ = ['PackageExportsError', 'map_exports', 'ResolveError', 'Resolver', 'create']
