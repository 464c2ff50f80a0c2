"""Data model for module scan results and the unused exports working set."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, NamedTuple, Set, Tuple, Union


class Binding(Enum):
    """Sentinel binding names that aren't plain export identifiers."""

    DEFAULT = "default"
    NAMESPACE = "*"

    def __str__(self) -> str:
        return self.value


Name = Union[str, Binding]


def display_name(name: Name) -> str:
    """Return the name as written in source (``default`` or ``*`` for sentinels)."""
    return str(name)


def sort_names(names: Iterable[Name]) -> list:
    """Sort binding names for display, with the default export first."""
    return sorted(names, key=lambda name: (name is not Binding.DEFAULT, display_name(name)))


class AliasRule(NamedTuple):
    """An import specifier prefix and the directory it stands for."""

    prefix: str
    target: str


@dataclass(frozen=True)
class ScannedModule:
    """
    The scan result for one module file.

    Attributes:
        path: Canonical absolute path of the module.
        exports: Names the module exports, ``Binding.DEFAULT`` for a default export.
        imports: Import specifier -> names imported through it. ``Binding.NAMESPACE``
                 marks a namespace import; an empty set is a side-effect import.
    """

    path: str
    exports: FrozenSet[Name] = frozenset()
    imports: Mapping[str, FrozenSet[Name]] = field(default_factory=dict)

    def iter_imports(self) -> Iterator[Tuple[str, FrozenSet[Name]]]:
        """Iterate over (specifier, imported names) edges in specifier order."""
        for specifier in sorted(self.imports):
            yield specifier, self.imports[specifier]


class UnusedExports:
    """
    Working set of possibly unused exports, keyed by module path.

    Export sets only ever shrink, and a module whose set becomes empty is
    dropped, so every module held always has at least one unused export.
    """

    def __init__(self):
        self._exports: Dict[str, Set[Name]] = {}

    @classmethod
    def from_modules(cls, modules: Iterable[ScannedModule]) -> "UnusedExports":
        """Seed the working set from every scanned module that exports something."""
        unused = cls()
        for module in modules:
            if module.exports:
                unused._exports[module.path] = set(module.exports)
        return unused

    def eliminate(self, path: str, imported: Iterable[Name]) -> None:
        """
        Remove names imported from the module at ``path``.

        A namespace import uses every named export but not the default
        export, which is only used when it's also imported explicitly.

        Args:
            path: The imported module.
            imported: Names imported from it, possibly including sentinels.
        """
        exports = self._exports.get(path)
        if exports is None:
            return

        imported = set(imported)
        if Binding.NAMESPACE in imported:
            exports.intersection_update({Binding.DEFAULT})
            if Binding.DEFAULT in imported:
                exports.discard(Binding.DEFAULT)
        else:
            exports.difference_update(imported)

        if not exports:
            del self._exports[path]

    def iter_modules(self) -> Iterator[Tuple[str, list]]:
        """Iterate over (path, sorted names) pairs in path order."""
        for path in sorted(self._exports):
            yield path, sort_names(self._exports[path])

    def export_count(self) -> int:
        """Return the total number of unused exports across all modules."""
        return sum(len(names) for names in self._exports.values())

    def as_dict(self) -> Dict[str, Set[Name]]:
        """Return the report as a path-sorted dict of export sets."""
        return {path: set(self._exports[path]) for path in sorted(self._exports)}

    def __len__(self) -> int:
        """Return the number of modules with unused exports."""
        return len(self._exports)

    def __contains__(self, path: str) -> bool:
        return path in self._exports

    def __repr__(self) -> str:
        return f"UnusedExports(modules={len(self._exports)}, exports={self.export_count()})"
