"""
Tool settings model for wpresolve.

These settings describe where wpresolve looks for things, not how modules
are resolved: the conventional config file name, the location of the local
webpack installation and how webpack configs are evaluated.
"""

import shutil
from pathlib import PurePath
from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field, field_validator


class ToolSettings(BaseModel):
    """
    Settings for locating and evaluating a webpack configuration.
    
    Attributes:
        config_filename: Conventional config file name searched upwards
        engine_path: Relative path identifying a local webpack installation
        node_executable: Node.js executable used to evaluate JavaScript configs
        evaluation_timeout: Seconds allowed for evaluating a config
    """
    
    config_filename: str = Field("webpack.config.js", min_length=1, description="Config file name searched upwards")
    engine_path: str = Field(
        "node_modules/webpack/lib/webpack.js",
        min_length=1,
        description="Relative path of the local webpack installation"
    )
    node_executable: str = Field("node", min_length=1, description="Node.js executable")
    evaluation_timeout: float = Field(30.0, gt=0, description="Seconds allowed for evaluating a config")
    
    @field_validator('config_filename', 'engine_path')
    @classmethod
    def validate_relative(cls, v: str) -> str:
        """Searched names must be relative so they can be joined onto each ancestor."""
        if PurePath(v).is_absolute():
            raise ValueError(f"Path must be relative: {v}")
        return v
    
    def find_node(self) -> Optional[str]:
        """Locate the node executable on PATH."""
        return shutil.which(self.node_executable)
    
    def validate_configuration(self) -> List[str]:
        """Get non-fatal warnings about these settings."""
        warnings = []
        if not self.find_node():
            warnings.append(
                f"Node executable '{self.node_executable}' not found on PATH; "
                f"JavaScript configs cannot be evaluated"
            )
        return warnings
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ToolSettings':
        """Create settings from a dictionary."""
        return cls(**data)
