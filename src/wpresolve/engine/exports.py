"""
Package ``exports`` field mapping.

Maps a subpath requested from a package (``"."`` or ``"./sub/path"``) onto
the package-relative targets listed in its description file's exports field.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple


class PackageExportsError(Exception):
    """Raised when a package's exports do not provide a requested subpath."""
    pass


def _normalize_exports(exports: Any) -> Dict[str, Any]:
    """
    Bring the exports field into subpath-keyed form.
    
    A bare target, an array, or an object of conditions all describe the
    package's main export.
    """
    if isinstance(exports, dict):
        keys = list(exports.keys())
        subpath_keys = [key for key in keys if key.startswith('.')]
        if subpath_keys and len(subpath_keys) != len(keys):
            raise PackageExportsError(
                "Exports field must not mix subpath keys and condition names"
            )
        if subpath_keys:
            return exports
    return {'.': exports}


def _match_subpath(mapping: Dict[str, Any], subpath: str) -> Optional[Tuple[Any, Optional[str], bool]]:
    """
    Find the exports entry for a subpath.
    
    Exact keys win. Otherwise the ``*`` pattern or trailing-``/`` folder key
    with the longest prefix wins.
    
    Returns:
        Tuple of (target, captured remainder, is pattern) or None
    """
    if subpath in mapping and '*' not in subpath:
        return mapping[subpath], None, False
    
    best_key = None
    best_prefix_len = -1
    best_capture = None
    for key in mapping:
        star = key.find('*')
        if star != -1:
            prefix, suffix = key[:star], key[star + 1:]
            if (len(subpath) > len(prefix) + len(suffix)
                    and subpath.startswith(prefix) and subpath.endswith(suffix)):
                if len(prefix) > best_prefix_len:
                    best_key, best_prefix_len = key, len(prefix)
                    best_capture = subpath[len(prefix):len(subpath) - len(suffix)]
        elif key.endswith('/') and subpath.startswith(key):
            if len(key) > best_prefix_len:
                best_key, best_prefix_len = key, len(key)
                best_capture = subpath[len(key):]
    
    if best_key is None:
        return None
    return mapping[best_key], best_capture, '*' in best_key


def _resolve_target(target: Any, capture: Optional[str], is_pattern: bool,
                    conditions: Sequence[str]) -> List[str]:
    """Expand a target into the list of concrete relative paths it allows."""
    if target is None:
        return []
    
    if isinstance(target, str):
        if not target.startswith('./'):
            raise PackageExportsError(f"Invalid exports target '{target}': must start with './'")
        if capture is None:
            return [target]
        if is_pattern:
            return [target.replace('*', capture)]
        return [target + capture]
    
    if isinstance(target, list):
        results = []
        for item in target:
            try:
                results.extend(_resolve_target(item, capture, is_pattern, conditions))
            except PackageExportsError:
                continue
        return results
    
    if isinstance(target, dict):
        for condition, value in target.items():
            if condition == 'default' or condition in conditions:
                # null excludes the subpath outright
                if value is None:
                    return []
                results = _resolve_target(value, capture, is_pattern, conditions)
                if results:
                    return results
        return []
    
    raise PackageExportsError(f"Invalid exports target of type {type(target).__name__}")


def map_exports(exports: Any, subpath: str, conditions: Sequence[str]) -> List[str]:
    """
    Map a requested subpath through a package's exports field.
    
    Args:
        exports: Value of the exports field from the description file
        subpath: ``"."`` or a ``"./"``-prefixed path inside the package
        conditions: Active condition names; ``default`` always matches
        
    Returns:
        Package-relative targets, in the order they should be tried
        
    Raises:
        PackageExportsError: If the subpath is not exported
    """
    mapping = _normalize_exports(exports)
    match = _match_subpath(mapping, subpath)
    if match is None:
        raise PackageExportsError(f"Package path {subpath} is not exported")
    
    targets = _resolve_target(match[0], match[1], match[2], conditions)
    if not targets:
        raise PackageExportsError(f"Package path {subpath} is not exported for the active conditions")
    return targets
