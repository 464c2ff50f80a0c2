"""Unused exports finder that orchestrates scanning and elimination."""

import concurrent.futures
import logging
import os
from typing import Dict, Iterable, List, Mapping, Optional, Set

from usage.model import Name, ScannedModule, UnusedExports
from .discovery import DEFAULT_MODULE_GLOB, iter_module_files
from .errors import ModuleReadError
from .options import Options, validate_options
from .parser import scan_module_code
from .resolver import SpecifierResolver


logger = logging.getLogger(__name__)


def find_unused_exports(
    cwd=None,
    module_glob: str = DEFAULT_MODULE_GLOB,
    resolve_file_extensions: Optional[List[str]] = None,
    resolve_index_files: bool = False,
    aliases=None,
    *,
    max_workers: Optional[int] = None,
) -> Dict[str, Set[Name]]:
    """
    Find module exports that no other project module imports.

    `.gitignore` files are used to ignore module files. See
    `validate_options` for the options.

    Returns:
        Map of absolute module paths (sorted) to their unused export names,
        `Binding.DEFAULT` standing for a default export. Modules without
        unused exports are absent.

    Raises:
        ConfigurationError: If an option is invalid; raised before any
                            module is read.
        ModuleReadError: If a module file can't be read.
        ModuleScanError: If a module's source can't be tokenized.
    """
    options = validate_options(
        cwd=cwd,
        module_glob=module_glob,
        resolve_file_extensions=resolve_file_extensions,
        resolve_index_files=resolve_index_files,
        aliases=aliases,
        max_workers=max_workers,
    )
    return build_report(options).as_dict()


def build_report(options: Options) -> UnusedExports:
    """
    Scan a project's modules and eliminate every imported export.

    Args:
        options: Validated options.

    Returns:
        UnusedExports holding the exports never imported.
    """
    relative_paths = iter_module_files(options.cwd, options.module_glob)
    paths = [os.path.join(options.cwd, *relative.split("/")) for relative in relative_paths]

    modules = scan_modules(paths, max_workers=options.max_workers)

    resolver = SpecifierResolver(
        cwd=options.cwd,
        aliases=options.aliases,
        extensions=options.resolve_file_extensions,
        index_files=options.resolve_index_files,
    )
    unused = eliminate_unused_exports(modules, resolver)
    logger.debug("%r after scanning %d modules", unused, len(modules))
    return unused


def scan_module_file(path: str) -> ScannedModule:
    """
    Read and scan one module file.

    Raises:
        ModuleReadError: If the file can't be read or isn't UTF-8.
    """
    try:
        with open(path, encoding="utf-8") as f:
            code = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ModuleReadError(path, str(e)) from e
    return scan_module_code(code, path)


def scan_modules(
    paths: Iterable[str],
    max_workers: Optional[int] = None,
) -> Dict[str, ScannedModule]:
    """
    Scan module files concurrently.

    Every scan is independent, so they run on a thread pool; the result is
    only returned once all of them have finished.

    Args:
        paths: Absolute module file paths.
        max_workers: Thread pool size (default: the executor's default).

    Returns:
        Map of module paths to scan results.

    Raises:
        ModuleReadError: From the first module that failed; no partial
                         result is returned.
    """
    paths = list(paths)
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = list(executor.map(scan_module_file, paths))
    return {module.path: module for module in results}


def eliminate_unused_exports(
    modules: Mapping[str, ScannedModule],
    resolver: SpecifierResolver,
) -> UnusedExports:
    """
    Eliminate every export imported by a project module.

    Every import edge only ever removes names from its target's set, so
    the result doesn't depend on the order modules and edges are visited.

    Args:
        modules: Scan results mapped by module path.
        resolver: Resolver for import specifiers.

    Returns:
        UnusedExports holding the exports never imported.
    """
    unused = UnusedExports.from_modules(modules.values())

    for path in sorted(modules):
        for specifier, imported in modules[path].iter_imports():
            target = resolver.resolve(specifier, path, modules)
            if target is None:
                # Bare or unresolvable; neither confirms any export is used
                logger.debug("Unresolved import %r in %s", specifier, path)
                continue
            if target not in unused:
                # Every export of the target is already used
                continue
            unused.eliminate(target, imported)

    return unused
