"""
Webpack configuration loader for wpresolve.

A webpack configuration is either data (JSON or YAML) or a JavaScript module
that must be evaluated by Node.js against the project's own webpack. Both are
represented as a ConfigSource, materialized by a single call, and only the
``resolve`` section of the result is kept.
"""

import json
import os
import subprocess
import yaml
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union
import logging
from pydantic import ValidationError

from .parser import ConfigurationError
from ..models.resolve_options import ResolveOptions
from ..models.settings import ToolSettings


logger = logging.getLogger(__name__)


# Prints the JSON of the first compiler's normalized resolve options as the
# last line on stdout.
NODE_EVALUATOR = r"""
const configPath = process.env.WPRESOLVE_CONFIG;
const enginePath = process.env.WPRESOLVE_ENGINE;

const serialize = (key, value) => {
  if (value instanceof RegExp || typeof value === 'function') { return undefined; }
  return value;
};

Promise.resolve()
  .then(() => {
    let config = require(require.resolve(configPath));
    if (config && config.__esModule && config.default) { config = config.default; }
    return typeof config === 'function' ? config() : config;
  })
  .then((config) => {
    const webpack = require(require.resolve(enginePath));
    let compiler = webpack(config);
    compiler = compiler.compilers ? compiler.compilers[0] : compiler;
    process.stdout.write('\n' + JSON.stringify(compiler.options.resolve || {}, serialize) + '\n');
  })
  .catch((err) => {
    process.stderr.write(String(err && err.stack || err) + '\n');
    process.exit(1);
  });
"""

DATA_SUFFIXES = {'.json', '.yaml', '.yml'}


class ConfigSource(ABC):
    """A configuration that may still need to be produced."""
    
    @abstractmethod
    def materialize(self) -> Any:
        """Produce the configuration value."""


class StaticValue(ConfigSource):
    """A configuration that is already available as data."""
    
    def __init__(self, value: Any):
        self.value = value
    
    def materialize(self) -> Any:
        return self.value


class Factory(ConfigSource):
    """A configuration produced by calling a zero-argument function."""
    
    def __init__(self, func: Callable[[], Any]):
        self.func = func
    
    def materialize(self) -> Any:
        return self.func()


class NodeConfigEvaluator:
    """
    Evaluates a JavaScript webpack config with Node.js.
    
    The config is handed to the located webpack installation so that the
    returned options are the ones webpack itself would use.
    """
    
    def __init__(self, settings: ToolSettings):
        self.settings = settings
    
    def evaluate(self, config_path: Path, engine_path: Path) -> Dict[str, Any]:
        """
        Evaluate a config and return its normalized resolve options.
        
        Args:
            config_path: Path to the webpack config file
            engine_path: Path to webpack's lib/webpack.js
            
        Returns:
            The ``resolve`` options of the first compiler
            
        Raises:
            ConfigurationError: If Node.js is missing or evaluation fails
        """
        env = dict(os.environ)
        env['WPRESOLVE_CONFIG'] = str(config_path)
        env['WPRESOLVE_ENGINE'] = str(engine_path)
        
        try:
            completed = subprocess.run(
                [self.settings.node_executable, '-e', NODE_EVALUATOR],
                cwd=str(config_path.parent),
                env=env,
                capture_output=True,
                text=True,
                timeout=self.settings.evaluation_timeout,
            )
        except FileNotFoundError as e:
            raise ConfigurationError(f"Node executable not found: {self.settings.node_executable}") from e
        except subprocess.TimeoutExpired as e:
            raise ConfigurationError(
                f"Evaluating {config_path} timed out after {self.settings.evaluation_timeout}s"
            ) from e
        
        if completed.returncode != 0:
            raise ConfigurationError(f"Evaluating {config_path} failed: {completed.stderr.strip()}")
        
        lines = [line for line in completed.stdout.splitlines() if line.strip()]
        if not lines:
            raise ConfigurationError(f"Evaluating {config_path} produced no output")
        
        try:
            return json.loads(lines[-1])
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Evaluating {config_path} produced invalid JSON: {e}") from e


class ConfigLoader:
    """
    Loads the resolve options of a webpack configuration.
    
    Data files (JSON, YAML) are read directly. Anything else is treated as a
    JavaScript module and evaluated with Node.js.
    """
    
    def __init__(self, settings: Optional[ToolSettings] = None):
        self.settings = settings or ToolSettings()
        self.evaluator = NodeConfigEvaluator(self.settings)
    
    def get_source(self, config_path: Union[str, Path], engine_path: Union[str, Path]) -> ConfigSource:
        """
        Pick the source variant for a config file.
        
        Args:
            config_path: Path to the webpack config file
            engine_path: Path to webpack's lib/webpack.js
            
        Returns:
            StaticValue for data files, Factory for JavaScript modules
            
        Raises:
            ConfigurationError: If the file does not exist or cannot be parsed
        """
        config_path = Path(config_path).resolve()
        if not config_path.is_file():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        
        suffix = config_path.suffix.lower()
        if suffix in DATA_SUFFIXES:
            return StaticValue(self._load_data_file(config_path, suffix))
        
        engine_path = Path(engine_path).resolve()
        return Factory(lambda: self.evaluator.evaluate(config_path, engine_path))
    
    def _load_data_file(self, file_path: Path, suffix: str) -> Any:
        """Read a JSON or YAML config file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                if suffix == '.json':
                    return json.load(f)
                return yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Invalid configuration syntax in {file_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {file_path}: {e}") from e
    
    def get_resolve_section(self, source: ConfigSource) -> Dict[str, Any]:
        """
        Materialize a config source and extract its resolve options.
        
        Node-evaluated sources already yield the resolve options. Data sources
        yield a whole webpack config, or a list of them, of which the first is
        used.
        """
        config = source.materialize()
        
        if isinstance(source, StaticValue):
            if isinstance(config, list):
                if not config:
                    raise ConfigurationError("Configuration is an empty list")
                config = config[0]
            if not isinstance(config, dict):
                raise ConfigurationError(f"Configuration must be an object, got {type(config).__name__}")
            config = config.get('resolve') or {}
        
        if not isinstance(config, dict):
            raise ConfigurationError(f"Resolve options must be an object, got {type(config).__name__}")
        return config
    
    def load_resolve_options(self, config_path: Union[str, Path], engine_path: Union[str, Path]) -> ResolveOptions:
        """
        Load resolve options, falling back to defaults on any failure.
        
        Args:
            config_path: Path to the webpack config file
            engine_path: Path to webpack's lib/webpack.js
            
        Returns:
            ResolveOptions from the config, or default ResolveOptions
        """
        try:
            source = self.get_source(config_path, engine_path)
            options = ResolveOptions.from_dict(self.get_resolve_section(source))
        except (ConfigurationError, ValidationError) as e:
            logger.debug(f"Using default resolve options, cannot load {config_path}: {e}")
            return ResolveOptions()
        
        logger.debug(f"Loaded resolve options from {config_path}")
        return options


def load_resolve_options(config_path: Union[str, Path], engine_path: Union[str, Path],
                         settings: Optional[ToolSettings] = None) -> ResolveOptions:
    """
    Convenience function to load resolve options from a webpack config.
    
    Args:
        config_path: Path to the webpack config file
        engine_path: Path to webpack's lib/webpack.js
        settings: Tool settings (optional)
        
    Returns:
        ResolveOptions, default ones if the config cannot be loaded
    """
    return ConfigLoader(settings).load_resolve_options(config_path, engine_path)
