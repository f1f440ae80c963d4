"""
Command-line interface for wpresolve.

Parses the request and flags, locates the webpack config and the local
webpack installation from the base path, loads the resolve options and
prints the resolved file. This is the only place that decides the process
exit status.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Callable, List, Optional

from . import __version__, __description__
from .config.loader import ConfigLoader
from .config.parser import ConfigurationError, load_settings
from .engine.resolver import ResolveError, create
from .models.resolve_options import ResolveOptions
from .models.settings import ToolSettings
from .tools.path_tree import find_local_path


logger = logging.getLogger(__name__)


def build_parser(cwd: str) -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Args:
        cwd: Directory used as the default base path
    """
    parser = argparse.ArgumentParser(prog='wpresolve', description=__description__)
    parser.add_argument('--version', action='version', version=__version__)
    parser.add_argument('request', nargs='?', help="Thing to resolve, e.g. ./utils or lodash/fp")
    parser.add_argument('-b', '--basepath', default=cwd, help=f"Path to resolve from <{cwd}>")
    parser.add_argument('-d', '--debug', action='store_true', default=False, help="Output debugging info")
    parser.add_argument('-s', '--suppress', action='store_true', default=False, help="Suppress error output")
    parser.add_argument(
        '-w', '--webpackConfig',
        dest='webpack_config',
        help="Path to a webpack.config.js file"
    )
    return parser


def configure_logging(debug: bool) -> None:
    """Send wpresolve's log records to stderr as ``LEVEL: message``."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

    package_logger = logging.getLogger('wpresolve')
    package_logger.handlers[:] = [handler]
    package_logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    package_logger.propagate = False


def get_resolver_options(start_dir: str, options: argparse.Namespace, settings: ToolSettings) -> ResolveOptions:
    """
    Find the webpack config and installation and load the resolve options.

    An explicit config path is used literally. Otherwise the conventional
    config file is searched upwards from the start directory.

    Args:
        start_dir: Absolute base path
        options: Parsed command-line options
        settings: Tool settings

    Returns:
        Resolve options from the config, or defaults

    Raises:
        ConfigurationError: If a config file exists but webpack is not installed
    """
    if options.webpack_config:
        config_file = str(Path(options.webpack_config).resolve())
    else:
        config_file = find_local_path(start_dir, settings.config_filename)
    logger.debug(f"Webpack config file: {config_file}")

    engine_path = find_local_path(start_dir, settings.engine_path)
    logger.debug(f"Webpack module: {engine_path}")

    if config_file and not engine_path and Path(config_file).exists():
        raise ConfigurationError(
            f"Found {config_file} but no local webpack installation "
            f"({settings.engine_path}) above {start_dir}"
        )

    if config_file and engine_path:
        return ConfigLoader(settings).load_resolve_options(config_file, engine_path)

    return ResolveOptions()


def formatter(request: str, options: argparse.Namespace) -> Callable[[Optional[ResolveError], Optional[str]], int]:
    """
    Build the completion callback that reports a resolution outcome.

    Returns:
        Callback returning the exit status
    """
    def report(err: Optional[ResolveError], filepath: Optional[str]) -> int:
        if err:
            if not options.suppress:
                logger.error(f"Could not resolve {request} from {options.basepath}")
            logger.debug(str(err))
            for candidate in err.tried:
                logger.debug(f"Tried {candidate}")
            return 1

        print(filepath)
        return 0

    return report


def output_result(request: str, options: argparse.Namespace) -> int:
    """
    Resolve a request and print the result.

    Args:
        request: Module request to resolve
        options: Parsed command-line options

    Returns:
        Process exit status
    """
    start_dir = str(Path(options.basepath).resolve())
    logger.debug(f"Basepath: {start_dir}")

    try:
        settings_result = load_settings(start_dir)
        settings = settings_result.settings
        logger.debug(f"Settings file: {settings_result.settings_path or 'defaults'}")
        for warning in settings_result.warnings:
            logger.debug(warning)
    except ConfigurationError as e:
        if not options.suppress:
            logger.warning(f"Ignoring settings: {e}")
        settings = ToolSettings()

    try:
        resolver_options = get_resolver_options(start_dir, options, settings)
    except ConfigurationError as e:
        if not options.suppress:
            logger.error(str(e))
        return 1

    resolver = create(resolver_options)
    return asyncio.run(resolver({}, start_dir, request, formatter(request, options)))


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the command line.

    Args:
        argv: Arguments without the program name; defaults to sys.argv[1:]

    Returns:
        Process exit status
    """
    parser = build_parser(os.getcwd())
    options = parser.parse_args(argv)

    if not options.request:
        parser.print_help()
        return 1

    configure_logging(options.debug)
    return output_result(options.request, options)


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
