"""
Module request resolver for wpresolve.

This module implements webpack-style resolution of a request string from a
base directory: aliases, relative and absolute paths, hierarchical module
directories, package description files with main fields and exports, and
extension probing. Every path probed on the way is recorded so that a failed
resolution can be explained.
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union
import logging

from .exports import PackageExportsError, map_exports
from ..models.resolve_options import AliasEntry, ResolveOptions
from ..tools.path_tree import get_tree


logger = logging.getLogger(__name__)


class ResolveError(Exception):
    """
    Raised when a request cannot be resolved.

    Attributes:
        request: The request that failed
        path: The directory it was resolved from
        tried: Every candidate path that was probed
    """

    def __init__(self, message: str, request: Optional[str] = None,
                 path: Optional[str] = None, tried: Optional[List[str]] = None):
        super().__init__(message)
        self.request = request
        self.path = path
        self.tried = list(tried or [])


@dataclass
class _Lookup:
    """State of a single resolution."""
    request: str
    path: str
    tried: List[str] = field(default_factory=list)

    def fail(self, message: str) -> ResolveError:
        return ResolveError(message, self.request, self.path, self.tried)


def _split_query(request: str) -> Tuple[str, str]:
    """Split ``path?query#fragment`` into the path and the suffix."""
    for i, ch in enumerate(request):
        # A leading '#' is part of the request itself
        if ch == '?' or (ch == '#' and i > 0):
            return request[:i], request[i:]
    return request, ''


def _is_relative(request: str) -> bool:
    return request in ('.', '..') or request.startswith('./') or request.startswith('../')


def _split_module_request(request: str) -> Tuple[str, str]:
    """
    Split a module request into package name and package subpath.

    ``@scope/pkg/lib/a`` becomes ``('@scope/pkg', './lib/a')`` and ``pkg``
    becomes ``('pkg', '.')``.
    """
    parts = request.split('/')
    count = 2 if request.startswith('@') and len(parts) > 1 else 1
    name = '/'.join(parts[:count])
    rest = '/'.join(parts[count:])
    return name, './' + rest if rest else '.'


def _get_field(description: Mapping[str, Any], key: Union[str, List[str]]) -> Any:
    """Read a possibly nested field from a description file."""
    if isinstance(key, str):
        return description.get(key)

    value: Any = description
    for part in key:
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


class Resolver:
    """
    Resolves module requests to absolute file paths.

    A resolver is created once from ResolveOptions and can be used for any
    number of requests. It holds no state between requests.
    """

    def __init__(self, options: Optional[ResolveOptions] = None):
        self.options = options or ResolveOptions()

    def resolve(self, context: Any, path: str, request: str) -> str:
        """
        Resolve a request from a base directory.

        Args:
            context: Placeholder for the caller's filesystem context; unused
            path: Directory to resolve from
            request: Module request, e.g. ``./utils``, ``lodash/fp`` or ``/abs/file``

        Returns:
            Absolute path of the resolved file, with any query or fragment re-appended

        Raises:
            ResolveError: If the request cannot be resolved
        """
        lookup = _Lookup(request=request, path=path)
        if not request:
            raise lookup.fail("Empty request")

        request_path, suffix = _split_query(request)
        base = os.path.abspath(path)

        result = self._resolve_request(lookup, base, request_path, frozenset())
        if result is None:
            raise lookup.fail(f"Can't resolve '{request}' in '{path}'")

        if self.options.symlinks:
            result = os.path.realpath(result)

        logger.debug(f"Resolved {request} in {path} to {result} after {len(lookup.tried)} candidates")
        return result + suffix

    async def resolve_async(self, context: Any, path: str, request: str) -> str:
        """Resolve a request without blocking the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.resolve, context, path, request)

    async def __call__(self, context: Any, path: str, request: str,
                       callback: Callable[[Optional[ResolveError], Optional[str]], Any]) -> Any:
        """
        Resolve a request and report the outcome to a callback.

        The callback is invoked exactly once, as ``callback(error, None)`` on
        failure or ``callback(None, filepath)`` on success.

        Returns:
            Whatever the callback returns
        """
        try:
            filepath = await self.resolve_async(context, path, request)
        except ResolveError as e:
            return callback(e, None)
        return callback(None, filepath)

    def _resolve_request(self, lookup: _Lookup, base: str, request: str,
                         applied: FrozenSet[str]) -> Optional[str]:
        result = None
        if not os.path.isabs(request) and not _is_relative(request):
            result = self._apply_alias_fields(lookup, base, request, applied)

        if result is None:
            result = self._apply_aliases(lookup, self.options.alias, base, request, applied)

        if result is None:
            result = self._resolve_plain(lookup, base, request)

        if result is None:
            result = self._apply_aliases(lookup, self.options.fallback, base, request, applied)

        if result is None:
            return None
        return self._replace_file(lookup, result, applied)

    def _apply_aliases(self, lookup: _Lookup, entries: List[AliasEntry], base: str,
                       request: str, applied: FrozenSet[str]) -> Optional[str]:
        """
        Try every matching alias rule in order.

        Each rule is applied at most once per resolution, so a rule whose
        target starts with its own name does not recurse.
        """
        for entry in entries:
            if entry.name in applied or not entry.matches(request):
                continue

            for target in entry.targets():
                if target is False:
                    raise lookup.fail(f"'{request}' is ignored by alias '{entry.name}'")

                new_request = entry.apply(request, target)
                logger.debug(f"Alias '{entry.name}' rewrites {request} to {new_request}")
                result = self._resolve_request(lookup, base, new_request, applied | {entry.name})
                if result is not None:
                    return result

        return None

    def _alias_field_map(self, lookup: _Lookup, directory: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        """
        Find the package enclosing a directory and its replacement map.

        The map merges every object-valued alias field of the nearest
        description file; earlier fields win on conflicting keys.

        Returns:
            ``(package_root, replacements)``, or None without a description file
        """
        if not self.options.alias_fields:
            return None

        for ancestor in get_tree(directory):
            description = self._read_description(lookup, ancestor)
            if description is None:
                continue

            replacements: Dict[str, Any] = {}
            for alias_field in self.options.alias_fields:
                value = _get_field(description, alias_field)
                if isinstance(value, dict):
                    for key, target in value.items():
                        replacements.setdefault(key, target)
            return ancestor, replacements

        return None

    def _apply_alias_fields(self, lookup: _Lookup, base: str, request: str,
                            applied: FrozenSet[str]) -> Optional[str]:
        """Replace a module request through the requesting package's alias fields."""
        found = self._alias_field_map(lookup, base)
        if found is None:
            return None

        package_root, replacements = found
        if request not in replacements:
            return None
        return self._apply_replacement(lookup, package_root, request, replacements[request], applied)

    def _replace_file(self, lookup: _Lookup, filepath: str, applied: FrozenSet[str]) -> str:
        """Swap a resolved file for its replacement in its package's alias fields."""
        found = self._alias_field_map(lookup, os.path.dirname(filepath))
        if found is None:
            return filepath

        package_root, replacements = found
        relative = os.path.relpath(filepath, package_root).replace(os.sep, '/')
        for key in ('./' + relative, relative):
            if key in replacements:
                result = self._apply_replacement(lookup, package_root, key, replacements[key], applied)
                return filepath if result is None else result
        return filepath

    def _apply_replacement(self, lookup: _Lookup, package_root: str, key: str,
                           target: Any, applied: FrozenSet[str]) -> Optional[str]:
        # Each key is replaced at most once per resolution
        marker = f"{package_root}:{key}"
        if marker in applied:
            return None

        if target is False:
            raise lookup.fail(f"'{key}' is ignored by package {package_root}")
        if not isinstance(target, str) or target == key:
            return None

        logger.debug(f"Package {package_root} replaces {key} with {target}")
        return self._resolve_request(lookup, package_root, target, applied | {marker})

    def _resolve_plain(self, lookup: _Lookup, base: str, request: str) -> Optional[str]:
        if os.path.isabs(request):
            return self._resolve_path(lookup, request)

        if _is_relative(request):
            return self._resolve_path(lookup, os.path.join(base, request))

        if self.options.prefer_relative:
            result = self._resolve_path(lookup, os.path.join(base, request))
            if result is not None:
                return result

        return self._resolve_module(lookup, base, request)

    def _resolve_path(self, lookup: _Lookup, path: str) -> Optional[str]:
        """Resolve a path as a file, then as a directory. A trailing slash means directory only."""
        directory_only = path.endswith('/') or path.endswith(os.sep)
        path = os.path.normpath(path)

        if not directory_only:
            result = self._resolve_file(lookup, path)
            if result is not None:
                return result

        return self._resolve_directory(lookup, path)

    def _resolve_file(self, lookup: _Lookup, path: str) -> Optional[str]:
        if not self.options.enforce_extension and self._is_file(lookup, path):
            return path

        for ext in self.options.extensions:
            candidate = path + ext
            if self._is_file(lookup, candidate):
                return candidate

        return None

    def _resolve_directory(self, lookup: _Lookup, path: str) -> Optional[str]:
        """Resolve a directory through its main fields, then its main files."""
        if not os.path.isdir(path):
            return None

        description = self._read_description(lookup, path)
        if description is not None:
            for main_field in self.options.main_fields:
                value = _get_field(description, main_field)
                # Object-valued fields such as browser replacement maps are skipped
                if not isinstance(value, str) or value in ('', '.', './'):
                    continue

                target = os.path.normpath(os.path.join(path, value))
                result = self._resolve_file(lookup, target)
                if result is None:
                    result = self._resolve_main_files(lookup, target)
                if result is not None:
                    return result

        return self._resolve_main_files(lookup, path)

    def _resolve_main_files(self, lookup: _Lookup, path: str) -> Optional[str]:
        if not os.path.isdir(path):
            return None

        for main_file in self.options.main_files:
            result = self._resolve_file(lookup, os.path.join(path, main_file))
            if result is not None:
                return result
        return None

    def _module_directories(self, base: str) -> List[str]:
        """
        Get the directories searched for a module request, in order.

        Absolute entries are used as they are. Names are looked up in every
        ancestor of the base directory, nearest first, ending at the root.
        """
        ancestors = get_tree(base)
        root = Path(base).anchor
        if root:
            ancestors.append(root)

        directories = []
        for name in self.options.modules:
            if os.path.isabs(name):
                directories.append(name)
                continue

            for ancestor in ancestors:
                # No node_modules/node_modules
                if os.path.basename(ancestor) == name:
                    continue
                directories.append(os.path.join(ancestor, name))

        return directories

    def _resolve_module(self, lookup: _Lookup, base: str, request: str) -> Optional[str]:
        name, subpath = _split_module_request(request)

        for module_dir in self._module_directories(base):
            package_dir = os.path.join(module_dir, name)

            if os.path.isdir(package_dir):
                result = self._resolve_in_package(lookup, package_dir, subpath)
            else:
                lookup.tried.append(package_dir)
                result = self._resolve_file(lookup, os.path.join(module_dir, request))

            if result is not None:
                return result

        return None

    def _resolve_in_package(self, lookup: _Lookup, package_dir: str, subpath: str) -> Optional[str]:
        """
        Resolve a subpath inside a package directory.

        When the package declares exports they are authoritative: nothing
        outside them can be reached, and no extensions are probed.
        """
        description = self._read_description(lookup, package_dir)

        if description is not None:
            for exports_field in self.options.exports_fields:
                exports = _get_field(description, exports_field)
                if exports is None:
                    continue

                try:
                    targets = map_exports(exports, subpath, self.options.condition_names)
                except PackageExportsError as e:
                    raise lookup.fail(f"{e} from package {package_dir}") from e

                for target in targets:
                    candidate = os.path.normpath(os.path.join(package_dir, target))
                    if self._is_file(lookup, candidate):
                        return candidate
                return None

        if subpath == '.':
            return self._resolve_directory(lookup, package_dir)
        return self._resolve_path(lookup, os.path.join(package_dir, subpath[2:]))

    def _read_description(self, lookup: _Lookup, directory: str) -> Optional[Dict[str, Any]]:
        """Read the first description file present in a directory."""
        for name in self.options.description_files:
            description_path = os.path.join(directory, name)
            if not os.path.isfile(description_path):
                continue

            try:
                with open(description_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
                raise lookup.fail(f"Cannot read description file {description_path}: {e}") from e

            if not isinstance(data, dict):
                raise lookup.fail(f"Description file {description_path} must contain a JSON object")
            return data

        return None

    def _is_file(self, lookup: _Lookup, candidate: str) -> bool:
        lookup.tried.append(candidate)
        return os.path.isfile(candidate)


def create(options: Union[ResolveOptions, Mapping[str, Any], None] = None) -> Resolver:
    """
    Create a resolver from resolve options.

    Args:
        options: ResolveOptions, or a webpack ``resolve`` mapping

    Returns:
        A Resolver for those options
    """
    if options is None or isinstance(options, ResolveOptions):
        return Resolver(options)
    return Resolver(ResolveOptions.from_dict(dict(options)))
