"""Scanner module for finding unused ECMAScript module exports."""

from .discovery import iter_module_files
from .parser import scan_module_code
from .resolver import SpecifierResolver
from .builder import find_unused_exports, eliminate_unused_exports
from .errors import (
    FindUnusedExportsError,
    ConfigurationError,
    ModuleReadError,
    ModuleScanError,
)

__all__ = [
    "iter_module_files",
    "scan_module_code",
    "SpecifierResolver",
    "find_unused_exports",
    "eliminate_unused_exports",
    "FindUnusedExportsError",
    "ConfigurationError",
    "ModuleReadError",
    "ModuleScanError",
]
