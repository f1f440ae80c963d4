"""
Resolution option models for wpresolve.

This module defines the data structures for the ``resolve`` section of a
webpack configuration. Keys are accepted in webpack's camelCase spelling as
well as in snake_case, and unknown keys are ignored so that a full webpack
``resolve`` object can be passed in as-is.
"""

from typing import Dict, List, Optional, Any, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


AliasTarget = Union[str, List[str], bool]


class AliasEntry(BaseModel):
    """
    A single alias (or fallback) rule.
    
    Attributes:
        name: Request prefix the rule applies to
        alias: Replacement request, list of alternatives, or False to ignore the module
        only_module: Whether the rule only matches the exact name
    """
    
    model_config = ConfigDict(populate_by_name=True)
    
    name: str = Field(..., min_length=1, description="Request prefix the rule applies to")
    alias: AliasTarget = Field(..., description="Replacement request(s), or False to ignore")
    only_module: bool = Field(False, alias='onlyModule', description="Match the exact name only")
    
    @field_validator('alias')
    @classmethod
    def validate_alias(cls, v: AliasTarget) -> AliasTarget:
        """Reject True, which has no meaning as a target."""
        if v is True:
            raise ValueError("Alias target must be a string, a list of strings or false")
        return v
    
    def matches(self, request: str) -> bool:
        """Check if this rule applies to a request."""
        if request == self.name:
            return True
        return not self.only_module and request.startswith(self.name + '/')
    
    def targets(self) -> List[Union[str, bool]]:
        """Get the alternatives in the order they should be tried."""
        if isinstance(self.alias, list):
            return list(self.alias)
        return [self.alias]
    
    def apply(self, request: str, target: str) -> str:
        """Rewrite a matching request onto one of the targets."""
        return target + request[len(self.name):]


def _normalize_alias(v: Any) -> List[Any]:
    """Convert object-form aliases into array form."""
    if v is None:
        return []
    
    if isinstance(v, dict):
        entries = []
        for name, target in v.items():
            if not isinstance(name, str):
                raise ValueError(f"Alias names must be strings, got {type(name).__name__}")
            only_module = name.endswith('$')
            entries.append({
                'name': name[:-1] if only_module else name,
                'alias': target,
                'only_module': only_module,
            })
        return entries
    
    if isinstance(v, list):
        return v
    
    raise ValueError(f"Aliases must be an object or an array, got {type(v).__name__}")


class ResolveOptions(BaseModel):
    """
    Options controlling how module requests are resolved.
    
    Attributes:
        alias: Rules rewriting requests before lookup
        fallback: Rules rewriting requests after normal lookup failed
        extensions: Extensions tried, in order, when looking up a file
        enforce_extension: Whether a bare file name without an extension is rejected
        modules: Directory names searched hierarchically, or absolute directories
        main_fields: Description file fields naming a package's entry point
        main_files: File names tried when a directory is requested
        description_files: Names of package description files
        exports_fields: Description file fields holding package exports
        condition_names: Conditions matched in conditional exports
        symlinks: Whether results are resolved to their real path
        prefer_relative: Whether module requests are tried as relative first
    """
    
    model_config = ConfigDict(populate_by_name=True, extra='ignore')
    
    alias: List[AliasEntry] = Field(default_factory=list, description="Alias rules")
    fallback: List[AliasEntry] = Field(default_factory=list, description="Fallback rules")
    extensions: List[str] = Field(
        default_factory=lambda: ['.js', '.json', '.node'],
        description="Extensions tried when looking up a file"
    )
    enforce_extension: bool = Field(False, alias='enforceExtension', description="Require an extension")
    modules: List[str] = Field(
        default_factory=lambda: ['node_modules'],
        description="Module directory names or absolute directories"
    )
    main_fields: List[Union[str, List[str]]] = Field(
        default_factory=lambda: ['main'],
        alias='mainFields',
        description="Description file fields naming the entry point"
    )
    main_files: List[str] = Field(
        default_factory=lambda: ['index'],
        alias='mainFiles',
        description="File names tried for a directory"
    )
    description_files: List[str] = Field(
        default_factory=lambda: ['package.json'],
        alias='descriptionFiles',
        description="Names of package description files"
    )
    exports_fields: List[Union[str, List[str]]] = Field(
        default_factory=lambda: ['exports'],
        alias='exportsFields',
        description="Description file fields holding package exports"
    )
    condition_names: List[str] = Field(
        default_factory=list,
        alias='conditionNames',
        description="Conditions matched in conditional exports"
    )
    alias_fields: List[Union[str, List[str]]] = Field(
        default_factory=list,
        alias='aliasFields',
        description="Description file fields holding per-package replacement maps, e.g. browser"
    )
    symlinks: bool = Field(True, description="Resolve results to their real path")
    prefer_relative: bool = Field(False, alias='preferRelative', description="Try module requests as relative first")
    
    @field_validator('alias', 'fallback', mode='before')
    @classmethod
    def validate_aliases(cls, v) -> List[Any]:
        """Accept both the object and the array form of alias rules."""
        return _normalize_alias(v)
    
    @field_validator('extensions')
    @classmethod
    def validate_extensions(cls, v: List[str]) -> List[str]:
        """Drop duplicates while keeping order."""
        seen = []
        for ext in v:
            if ext not in seen:
                seen.append(ext)
        return seen
    
    @field_validator('modules', 'main_files', 'description_files')
    @classmethod
    def validate_names(cls, v: List[str]) -> List[str]:
        """Reject empty names."""
        for name in v:
            if not name or not name.strip():
                raise ValueError("Names must not be empty")
        return v
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation using webpack's key names."""
        return self.model_dump(by_alias=True)
    
    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ResolveOptions':
        """Create options from a webpack ``resolve`` mapping."""
        return cls.model_validate(data or {})
