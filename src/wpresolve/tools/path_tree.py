"""
Upward directory-tree search for wpresolve.

This module computes the ancestor directories of a start directory and finds
the nearest ancestor that contains a given file or directory. Both functions
are pure with respect to process state: the start directory is always passed
in explicitly.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union


logger = logging.getLogger(__name__)


def get_tree(start_dir: Union[str, Path]) -> List[str]:
    """
    Get the ancestor directories of a start directory, nearest first.
    
    The start directory itself is the first entry. The filesystem root is
    never included, so the root yields an empty list. No filesystem access
    takes place.
    
    Args:
        start_dir: Absolute directory path to start from
        
    Returns:
        List of directory paths from start_dir upwards, excluding the root
    """
    current = Path(start_dir)
    root = current.anchor
    paths = []
    
    # Anchorless paths bottom out at '.', which is not an ancestor either
    while str(current) != root and current != current.parent:
        paths.append(str(current))
        current = current.parent
    
    return paths


def find_local(start_dir: Union[str, Path], needle: Optional[str]) -> Optional[str]:
    """
    Find the nearest ancestor directory containing a file or directory.
    
    Args:
        start_dir: Absolute directory path to start searching from
        needle: Relative path of the file or directory to look for
        
    Returns:
        The first ancestor (nearest first) in which ``ancestor/needle``
        exists, or None if there is none or needle is empty
    """
    if not needle:
        return None
    
    for ancestor in get_tree(start_dir):
        candidate = Path(ancestor) / needle
        try:
            if candidate.exists():
                return ancestor
        except OSError as e:
            logger.debug(f"Cannot check {candidate}, skipping: {e}")
    
    return None


def find_local_path(start_dir: Union[str, Path], needle: Optional[str]) -> Optional[str]:
    """
    Find the full path of the nearest ``ancestor/needle`` that exists.
    
    Args:
        start_dir: Absolute directory path to start searching from
        needle: Relative path of the file or directory to look for
        
    Returns:
        Path of the found entry, or None if not found
    """
    ancestor = find_local(start_dir, needle)
    if ancestor is None:
        return None
    return str(Path(ancestor) / needle)
