"""
Unit tests for the resolution engine.

Tests relative, absolute and module requests, description files, package
exports, aliases and the asynchronous entry points of the Resolver class.
"""

import asyncio
import json
import os
import tempfile
import shutil
from pathlib import Path
import pytest

from wpresolve.engine.resolver import ResolveError, Resolver, create
from wpresolve.models.resolve_options import ResolveOptions


class TestResolver:
    """Test cases for the Resolver class."""

    def setup_method(self):
        """Set up a temporary project with sources and installed packages."""
        self.temp_dir = os.path.realpath(tempfile.mkdtemp())
        self.project = Path(self.temp_dir) / 'project'
        self.src = self.project / 'src'
        self.modules = self.project / 'node_modules'

        self._create_test_structure()
        self.resolver = Resolver()

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, relative: str, content: str = "module.exports = {};") -> Path:
        path = self.project / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    def _write_json(self, relative: str, data) -> Path:
        return self._write(relative, json.dumps(data))

    def _create_test_structure(self):
        """Create sources and a node_modules tree covering the lookup rules."""
        for relative in [
            "src/index.js",
            "src/utils.js",
            "src/app.ts",
            "src/helpers/index.js",
            "src/comp/lib/entry.js",
            "lib-alias/thing.js",
            "vendor/extra/index.js",
            "node_modules/simple/lib/main.js",
            "node_modules/noindex/index.js",
            "node_modules/@scope/pkg/index.js",
            "node_modules/@scope/pkg/sub/file.js",
            "node_modules/modern/esm.mjs",
            "node_modules/modern/cjs.js",
            "node_modules/modern/lib/feature.js",
            "node_modules/modern/lib/hidden.js",
            "node_modules/browserish/main.js",
            "node_modules/browserish/browser.js",
            "node_modules/browserish/events-shim.js",
            "node_modules/single.js",
        ]:
            self._write(relative)

        self._write_json("src/data.json", {"a": 1})
        self._write_json("src/comp/package.json", {"main": "./lib/entry"})
        self._write_json("node_modules/simple/package.json", {"name": "simple", "main": "lib/main.js"})
        self._write_json("node_modules/@scope/pkg/package.json", {"name": "@scope/pkg"})
        self._write_json("node_modules/modern/package.json", {
            "name": "modern",
            "exports": {
                ".": {"import": "./esm.mjs", "default": "./cjs.js"},
                "./feature": "./lib/feature.js",
            },
        })
        self._write_json("node_modules/browserish/package.json", {
            "name": "browserish",
            "browser": {"./main.js": "./browser.js", "fs": False, "events": "./events-shim.js"},
            "main": "main.js",
        })

    def _resolve(self, request: str, base: Path = None, **options) -> str:
        resolver = Resolver(ResolveOptions(**options)) if options else self.resolver
        return resolver.resolve({}, str(base or self.src), request)

    def test_relative_with_extension_probe(self):
        assert self._resolve('./utils') == str(self.src / 'utils.js')

    def test_relative_exact_file(self):
        assert self._resolve('./utils.js') == str(self.src / 'utils.js')

    def test_parent_relative(self):
        assert self._resolve('../utils', base=self.src / 'helpers') == str(self.src / 'utils.js')

    def test_extension_order(self):
        """Extensions are tried in the configured order."""
        assert self._resolve('./data') == str(self.src / 'data.json')

    def test_directory_index(self):
        assert self._resolve('./helpers') == str(self.src / 'helpers' / 'index.js')

    def test_directory_trailing_slash(self):
        assert self._resolve('./helpers/') == str(self.src / 'helpers' / 'index.js')

    def test_dot_request(self):
        assert self._resolve('.') == str(self.src / 'index.js')

    def test_directory_main_field(self):
        assert self._resolve('./comp') == str(self.src / 'comp' / 'lib' / 'entry.js')

    def test_unknown_extension_fails(self):
        with pytest.raises(ResolveError):
            self._resolve('./app')

    def test_custom_extensions(self):
        assert self._resolve('./app', extensions=['.ts', '.js']) == str(self.src / 'app.ts')

    def test_enforce_extension(self):
        """With enforced extensions a bare existing file name is not enough."""
        with pytest.raises(ResolveError):
            self._resolve('./utils.js', enforce_extension=True, extensions=['.js'])

        result = self._resolve('./utils.js', enforce_extension=True, extensions=['', '.js'])
        assert result == str(self.src / 'utils.js')

    def test_absolute_request(self):
        assert self._resolve(str(self.src / 'utils')) == str(self.src / 'utils.js')

    def test_module_main(self):
        """Packages are found in an ancestor's node_modules."""
        result = self._resolve('simple', base=self.src / 'helpers')
        assert result == str(self.modules / 'simple' / 'lib' / 'main.js')

    def test_module_index(self):
        assert self._resolve('noindex') == str(self.modules / 'noindex' / 'index.js')

    def test_scoped_module(self):
        assert self._resolve('@scope/pkg') == str(self.modules / '@scope' / 'pkg' / 'index.js')
        assert self._resolve('@scope/pkg/sub/file') == str(self.modules / '@scope' / 'pkg' / 'sub' / 'file.js')

    def test_module_file(self):
        """A module may be a single file directly inside node_modules."""
        assert self._resolve('single') == str(self.modules / 'single.js')

    def test_nearest_node_modules_wins(self):
        inner = self.src / 'inner'
        self._write("src/inner/node_modules/simple/index.js")

        assert self._resolve('simple', base=inner) == str(inner / 'node_modules' / 'simple' / 'index.js')

    def test_absolute_module_directory(self):
        vendor = str(self.project / 'vendor')
        result = self._resolve('extra', modules=[vendor, 'node_modules'])
        assert result == str(self.project / 'vendor' / 'extra' / 'index.js')

    def test_exports_default_condition(self):
        assert self._resolve('modern') == str(self.modules / 'modern' / 'cjs.js')

    def test_exports_condition_names(self):
        result = self._resolve('modern', condition_names=['import'])
        assert result == str(self.modules / 'modern' / 'esm.mjs')

    def test_exports_subpath(self):
        assert self._resolve('modern/feature') == str(self.modules / 'modern' / 'lib' / 'feature.js')

    def test_exports_hide_other_files(self):
        with pytest.raises(ResolveError, match="not exported"):
            self._resolve('modern/lib/hidden.js')

    def test_exports_fields_disabled(self):
        result = self._resolve('modern/lib/hidden', exports_fields=[])
        assert result == str(self.modules / 'modern' / 'lib' / 'hidden.js')

    def test_object_main_field_skipped(self):
        """A browser replacement map is not an entry point."""
        result = self._resolve('browserish', main_fields=['browser', 'main'])
        assert result == str(self.modules / 'browserish' / 'main.js')

    def test_alias_fields_replace_file(self):
        result = self._resolve('browserish', main_fields=['browser', 'main'], alias_fields=['browser'])
        assert result == str(self.modules / 'browserish' / 'browser.js')

    def test_alias_fields_replace_module(self):
        """Module requests from inside a package go through its replacement map."""
        base = self.modules / 'browserish'

        result = self._resolve('events', base=base, alias_fields=['browser'])
        assert result == str(base / 'events-shim.js')

    def test_alias_fields_ignore_module(self):
        with pytest.raises(ResolveError, match="ignored by package"):
            self._resolve('fs', base=self.modules / 'browserish', alias_fields=['browser'])

    def test_alias_fields_unused_by_default(self):
        assert self._resolve('browserish') == str(self.modules / 'browserish' / 'main.js')

        with pytest.raises(ResolveError, match="Can't resolve"):
            self._resolve('events', base=self.modules / 'browserish')

    def test_alias_fields_only_apply_to_own_package(self):
        """A package's replacement map does not affect requests from elsewhere."""
        self._write("node_modules/events/index.js")

        result = self._resolve('events', alias_fields=['browser'])
        assert result == str(self.modules / 'events' / 'index.js')

    def test_module_directories_end_at_root(self):
        directories = self.resolver._module_directories(str(self.src))

        assert directories[0] == str(self.src / 'node_modules')
        assert directories[-1] == os.path.join(self.src.anchor, 'node_modules')

    @pytest.mark.skipif(os.name == 'nt', reason="POSIX root")
    def test_module_directories_from_root(self):
        assert self.resolver._module_directories('/') == ['/node_modules']

    def test_alias_prefix(self):
        result = self._resolve('@lib/thing', alias={'@lib': str(self.project / 'lib-alias')})
        assert result == str(self.project / 'lib-alias' / 'thing.js')

    def test_alias_exact_match(self):
        alias = {'simple$': str(self.src / 'utils')}

        assert self._resolve('simple', alias=alias) == str(self.src / 'utils.js')
        assert self._resolve('simple/lib/main', alias=alias) == str(self.modules / 'simple' / 'lib' / 'main.js')

    def test_alias_alternatives(self):
        alias = {'x': [str(self.src / 'missing'), str(self.src / 'utils')]}
        assert self._resolve('x', alias=alias) == str(self.src / 'utils.js')

    def test_alias_relative_target(self):
        assert self._resolve('u', alias={'u': './utils'}) == str(self.src / 'utils.js')

    def test_alias_false_ignores_module(self):
        with pytest.raises(ResolveError, match="ignored"):
            self._resolve('fs', alias={'fs': False})

    def test_alias_onto_itself(self):
        """An alias whose target starts with its own name is applied once."""
        result = self._resolve('simple', alias={'simple': 'simple/lib/main'})
        assert result == str(self.modules / 'simple' / 'lib' / 'main.js')

    def test_fallback(self):
        fallback = {'missing-mod': str(self.src / 'utils')}

        assert self._resolve('missing-mod', fallback=fallback) == str(self.src / 'utils.js')

    def test_fallback_only_after_failure(self):
        fallback = {'simple': str(self.src / 'utils')}

        result = self._resolve('simple', fallback=fallback)
        assert result == str(self.modules / 'simple' / 'lib' / 'main.js')

    def test_prefer_relative(self):
        with pytest.raises(ResolveError):
            self._resolve('utils')

        assert self._resolve('utils', prefer_relative=True) == str(self.src / 'utils.js')

    def test_query_and_fragment_kept(self):
        assert self._resolve('./utils?raw#top') == str(self.src / 'utils.js') + '?raw#top'

    @pytest.mark.skipif(os.name == 'nt', reason="symlinks need privileges on Windows")
    def test_symlinks(self):
        link = self.src / 'link.js'
        link.symlink_to(self.src / 'utils.js')

        assert self._resolve('./link') == str(self.src / 'utils.js')
        assert self._resolve('./link', symlinks=False) == str(link)

    def test_failure_details(self):
        with pytest.raises(ResolveError) as exc_info:
            self._resolve('./nothing')

        err = exc_info.value
        assert err.request == './nothing'
        assert err.path == str(self.src)
        assert str(self.src / 'nothing.js') in err.tried
        assert "Can't resolve './nothing'" in str(err)

    def test_empty_request(self):
        with pytest.raises(ResolveError, match="Empty request"):
            self._resolve('')

    def test_invalid_description_file(self):
        self._write("node_modules/broken/package.json", "{not json")
        self._write("node_modules/broken/index.js")

        with pytest.raises(ResolveError, match="Cannot read description file"):
            self._resolve('broken')

    def test_undecodable_description_file(self):
        self._write("node_modules/latin/index.js")
        (self.modules / 'latin' / 'package.json').write_bytes(b'{"main": "\xe9t\xe9.js"}')

        with pytest.raises(ResolveError, match="Cannot read description file"):
            self._resolve('latin')

    def test_resolve_async(self):
        result = asyncio.run(self.resolver.resolve_async({}, str(self.src), './utils'))
        assert result == str(self.src / 'utils.js')

    def test_callback_success(self):
        calls = []

        def callback(err, filepath):
            calls.append((err, filepath))
            return 'done'

        result = asyncio.run(self.resolver({}, str(self.src), './utils', callback))

        assert result == 'done'
        assert calls == [(None, str(self.src / 'utils.js'))]

    def test_callback_failure(self):
        calls = []

        result = asyncio.run(self.resolver({}, str(self.src), './nothing', lambda err, fp: calls.append((err, fp)) or 1))

        assert result == 1
        assert len(calls) == 1
        assert isinstance(calls[0][0], ResolveError)
        assert calls[0][1] is None


class TestCreate:
    """Test cases for the create factory."""

    def test_default(self):
        assert create().options == ResolveOptions()

    def test_from_options(self):
        options = ResolveOptions(extensions=['.ts'])
        assert create(options).options is options

    def test_from_mapping(self):
        resolver = create({'extensions': ['.ts'], 'mainFields': ['module']})

        assert resolver.options.extensions == ['.ts']
        assert resolver.options.main_fields == ['module']
