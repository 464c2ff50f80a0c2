"""Validation of the options for finding unused exports."""

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from usage.model import AliasRule
from .discovery import DEFAULT_MODULE_GLOB
from .errors import ConfigurationError


@dataclass(frozen=True)
class Options:
    """Validated options, see `validate_options`."""

    cwd: str
    module_glob: str = DEFAULT_MODULE_GLOB
    resolve_file_extensions: Optional[Tuple[str, ...]] = None
    resolve_index_files: bool = False
    aliases: Tuple[AliasRule, ...] = ()
    max_workers: Optional[int] = None


def validate_options(
    cwd: Any = None,
    module_glob: Any = DEFAULT_MODULE_GLOB,
    resolve_file_extensions: Any = None,
    resolve_index_files: Any = False,
    aliases: Any = None,
    max_workers: Any = None,
) -> Options:
    """
    Check option types and combinations, in a fixed order.

    Only the `cwd` directory is touched; no module file is read.

    Args:
        cwd: Directory to search for modules and `.gitignore` files
             (default: the current working directory).
        module_glob: Module file glob pattern.
        resolve_file_extensions: File extensions (without the leading `.`,
                                 in preference order) to try for
                                 extensionless import specifiers.
        resolve_index_files: Whether to try directory index files for
                             extensionless import specifiers. Requires
                             `resolve_file_extensions`.
        aliases: Specifier prefix -> directory (relative to cwd), as an
                 ordered mapping or a sequence of pairs.
        max_workers: Number of threads scanning module files.

    Returns:
        The validated Options.

    Raises:
        ConfigurationError: For the first invalid option.
    """
    if cwd is None:
        cwd = os.getcwd()

    if not isinstance(cwd, (str, os.PathLike)):
        raise ConfigurationError("Option `cwd` must be a string.")

    cwd = os.path.abspath(os.fspath(cwd))
    if not (os.path.isdir(cwd) and os.access(cwd, os.R_OK | os.X_OK)):
        raise ConfigurationError("Option `cwd` must be an accessible directory path.")

    if not isinstance(module_glob, str):
        raise ConfigurationError("Option `module_glob` must be a string.")

    if os.path.isabs(module_glob):
        raise ConfigurationError("Option `module_glob` must be a relative glob pattern.")

    if resolve_file_extensions is not None:
        if (
            not isinstance(resolve_file_extensions, (list, tuple))
            or not resolve_file_extensions
            or not all(isinstance(extension, str) for extension in resolve_file_extensions)
        ):
            raise ConfigurationError(
                "Option `resolve_file_extensions` must be a list of strings."
            )
        resolve_file_extensions = tuple(resolve_file_extensions)

    if not isinstance(resolve_index_files, bool):
        raise ConfigurationError("Option `resolve_index_files` must be a boolean.")

    if resolve_index_files and not resolve_file_extensions:
        raise ConfigurationError(
            "Option `resolve_index_files` can only be `True` if the option "
            "`resolve_file_extensions` is used."
        )

    alias_rules = _validate_aliases(aliases)

    if max_workers is not None and (
        isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1
    ):
        raise ConfigurationError("Option `max_workers` must be a positive integer.")

    return Options(
        cwd=cwd,
        module_glob=module_glob,
        resolve_file_extensions=resolve_file_extensions,
        resolve_index_files=resolve_index_files,
        aliases=alias_rules,
        max_workers=max_workers,
    )


def _validate_aliases(aliases: Any) -> Tuple[AliasRule, ...]:
    if aliases is None:
        return ()

    if isinstance(aliases, Mapping):
        pairs = list(aliases.items())
    elif isinstance(aliases, (list, tuple)):
        pairs = list(aliases)
    else:
        raise ConfigurationError(
            "Option `aliases` must be a mapping of prefixes to directory paths."
        )

    rules = []
    for pair in pairs:
        if (
            not isinstance(pair, (list, tuple))
            or len(pair) != 2
            or not all(isinstance(part, str) for part in pair)
        ):
            raise ConfigurationError(
                "Option `aliases` must be a mapping of prefixes to directory paths."
            )
        rules.append(AliasRule(*pair))
    return tuple(rules)
