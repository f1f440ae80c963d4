"""
YAML settings parser for wpresolve.

This module loads the optional ``.wpresolve.yaml`` settings file. The file is
searched upwards from the base path first, then in the home directory, and
defaults are used when none exists.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple, Union
import logging
from dataclasses import dataclass
from pydantic import ValidationError

from ..models.settings import ToolSettings
from ..tools.path_tree import find_local_path


logger = logging.getLogger(__name__)


@dataclass
class SettingsParseResult:
    """
    Result of settings parsing operation.
    
    Attributes:
        settings: The parsed and validated settings
        warnings: List of non-fatal warnings
        settings_path: Path to the settings file used
        is_default: Whether default settings were used
    """
    settings: ToolSettings
    warnings: List[str]
    settings_path: Optional[Path]
    is_default: bool


class ConfigurationError(Exception):
    """Raised when settings or a webpack configuration cannot be loaded."""
    pass


class SettingsParser:
    """
    YAML settings parser with validation and error handling.
    
    Loads a settings file, validates it and converts it to a ToolSettings
    object, reporting problems as ConfigurationError.
    """
    
    DEFAULT_SETTINGS_NAMES = [
        '.wpresolve.yaml',
        '.wpresolve.yml'
    ]
    
    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
    
    def load_settings(self, basepath: Union[str, Path],
                      settings_path: Optional[Union[str, Path]] = None) -> SettingsParseResult:
        """
        Load and parse settings from file or use defaults.
        
        Args:
            basepath: Directory the upward search starts from
            settings_path: Explicit settings file. If None, searches for default files.
            
        Returns:
            SettingsParseResult containing parsed settings and metadata
            
        Raises:
            ConfigurationError: If settings are invalid or the file cannot be read
        """
        if settings_path:
            settings_path = Path(settings_path)
            if not settings_path.exists():
                raise ConfigurationError(f"Settings file not found: {settings_path}")
            settings_data = self._load_yaml_file(settings_path)
        else:
            settings_path, settings_data = self._find_and_load_settings(basepath)
        
        is_default = settings_path is None
        
        try:
            settings = ToolSettings.from_dict(settings_data or {})
        except ValidationError as e:
            raise ConfigurationError(f"Settings validation failed: {e}") from e
        
        warnings = settings.validate_configuration()
        self.logger.debug(f"Settings loaded from {settings_path or 'defaults'}")
        
        return SettingsParseResult(
            settings=settings,
            warnings=warnings,
            settings_path=settings_path,
            is_default=is_default
        )
    
    def _find_and_load_settings(self, basepath: Union[str, Path]) -> Tuple[Optional[Path], Optional[Dict[str, Any]]]:
        """
        Find and load the settings file from default locations.
        
        Args:
            basepath: Directory the upward search starts from
            
        Returns:
            Tuple of (settings_path, settings_data) or (None, None) if not found
        """
        for name in self.DEFAULT_SETTINGS_NAMES:
            found = find_local_path(basepath, name)
            if found:
                return Path(found), self._load_yaml_file(Path(found))
        
        for name in self.DEFAULT_SETTINGS_NAMES:
            home_file = Path.home() / name
            if home_file.is_file():
                return home_file, self._load_yaml_file(home_file)
        
        return None, None
    
    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """
        Load and parse YAML file.
        
        Args:
            file_path: Path to YAML file
            
        Returns:
            Parsed YAML data as dictionary
            
        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Invalid YAML syntax in {file_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read settings file {file_path}: {e}") from e
        
        # Empty document
        if data is None:
            return {}
        
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file must contain a YAML object, got {type(data).__name__}")
        
        return data


def load_settings(basepath: Union[str, Path],
                  settings_path: Optional[Union[str, Path]] = None) -> SettingsParseResult:
    """
    Convenience function to load settings.
    
    Args:
        basepath: Directory the upward search starts from
        settings_path: Path to settings file (optional)
        
    Returns:
        SettingsParseResult containing parsed settings
        
    Raises:
        ConfigurationError: If settings are invalid
    """
    parser = SettingsParser()
    return parser.load_settings(basepath, settings_path)
