"""Import specifier resolution for mapping specifiers to project modules."""

import os
from typing import Collection, List, Optional, Sequence

from usage.model import AliasRule


class SpecifierResolver:
    """
    Resolves import specifiers to candidate module paths.

    Resolution only depends on the specifier, the importing module's path and
    the configuration given here, so one resolver can be shared by every
    module of a project.

    Args:
        cwd: Project directory that alias targets are relative to.
        aliases: Ordered alias rules; the first matching prefix wins.
        extensions: File extensions (without the leading `.`, in preference
                    order) to try for extensionless specifiers.
        index_files: Whether to try `index.<extension>` files inside a
                     directory the specifier points at.
    """

    def __init__(
        self,
        cwd: str,
        aliases: Sequence[AliasRule] = (),
        extensions: Optional[Sequence[str]] = None,
        index_files: bool = False,
    ):
        self.cwd = os.path.abspath(cwd)
        self.aliases = tuple(aliases)
        self.extensions = tuple(extensions) if extensions else ()
        self.index_files = index_files

    def apply_alias(self, specifier: str, importer: str) -> str:
        """
        Rewrite an aliased specifier as one relative to the importing module.

        Args:
            specifier: The import specifier as written in source.
            importer: Absolute path of the importing module.

        Returns:
            `./<alias target relative to the importer><remainder>` for the
            first alias whose prefix matches, otherwise the specifier unchanged.
        """
        for alias in self.aliases:
            if specifier.startswith(alias.prefix):
                target = os.path.normpath(os.path.join(self.cwd, alias.target))
                relative = os.path.relpath(target, os.path.dirname(importer))
                return "./" + relative.replace(os.sep, "/") + specifier[len(alias.prefix):]
        return specifier

    def candidates(self, specifier: str, importer: str) -> List[str]:
        """
        List the module paths a specifier could refer to, in preference order.

        The order is the exact path, then the exact path with each extension
        appended, then (with index files enabled) an index file with each
        extension inside the exact path. Extensions are only tried when the
        specifier has no file extension of its own.

        Args:
            specifier: The import specifier as written in source.
            importer: Absolute path of the importing module.

        Returns:
            Candidate absolute paths; empty for a bare specifier.
        """
        specifier = self.apply_alias(specifier, importer)

        # Bare specifiers refer to packages outside the project
        if not specifier.startswith("."):
            return []

        path = os.path.normpath(os.path.join(os.path.dirname(importer), specifier))
        paths = [path]

        if self.extensions and not os.path.splitext(path)[1]:
            for extension in self.extensions:
                paths.append(f"{path}.{extension}")
            if self.index_files:
                for extension in self.extensions:
                    paths.append(os.path.join(path, f"index.{extension}"))

        return paths

    def resolve(self, specifier: str, importer: str, modules: Collection[str]) -> Optional[str]:
        """
        Resolve a specifier to the first candidate that is a known module.

        Args:
            specifier: The import specifier as written in source.
            importer: Absolute path of the importing module.
            modules: Paths of every scanned module in the project.

        Returns:
            The resolved module path, or None if the specifier is bare or
            matches no scanned module.
        """
        for candidate in self.candidates(specifier, importer):
            if candidate in modules:
                return candidate
        return None

    def __repr__(self) -> str:
        return (
            f"SpecifierResolver(cwd={self.cwd!r}, aliases={len(self.aliases)}, "
            f"extensions={list(self.extensions)}, index_files={self.index_files})"
        )
