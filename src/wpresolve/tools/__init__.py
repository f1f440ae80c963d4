"""
Filesystem search utilities for wpresolve.

This module contains the upward directory-tree search used to locate
configuration files and module installations relative to a start directory.
"""

from .path_tree import get_tree, find_local, find_local_path

__all__ = ['get_tree', 'find_local', 'find_local_path']
