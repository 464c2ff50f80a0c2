"""Exceptions raised while finding unused exports."""


class FindUnusedExportsError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(FindUnusedExportsError, TypeError):
    """
    Raised for invalid options, before any module file is read.

    Also used for malformed configuration files and CLI mappings.
    """


class ModuleReadError(FindUnusedExportsError, OSError):
    """Raised when a module file can't be read or decoded."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Unable to read module '{path}': {reason}")
        self.path = path
        self.reason = reason


class ModuleScanError(FindUnusedExportsError, ValueError):
    """Raised when a module's source can't be tokenized."""

    def __init__(self, reason: str, position: int, path: str = ""):
        where = f" in '{path}'" if path else ""
        super().__init__(f"{reason} at position {position}{where}")
        self.reason = reason
        self.position = position
        self.path = path
