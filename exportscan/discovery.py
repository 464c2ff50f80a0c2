"""File discovery utilities for finding project module files."""

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import pathspec


logger = logging.getLogger(__name__)

DEFAULT_MODULE_GLOB = "**/*.{mjs,cjs,js}"
GITIGNORE_FILENAME = ".gitignore"


def expand_braces(pattern: str) -> List[str]:
    """
    Expand brace groups in a glob pattern.

    Example: `src/*.{mjs,js}` -> [`src/*.mjs`, `src/*.js`]. Groups may be
    nested; a brace without a matching close is kept literally.

    Args:
        pattern: Glob pattern possibly containing `{a,b}` groups.

    Returns:
        The expanded patterns, in order.
    """
    start = pattern.find("{")
    while start != -1:
        depth = 0
        options: List[str] = []
        option_start = start + 1
        for i in range(start, len(pattern)):
            ch = pattern[i]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    options.append(pattern[option_start:i])
                    prefix, suffix = pattern[:start], pattern[i + 1:]
                    expanded: List[str] = []
                    for option in options:
                        expanded.extend(expand_braces(prefix + option + suffix))
                    return expanded
            elif ch == "," and depth == 1:
                options.append(pattern[option_start:i])
                option_start = i + 1
        start = pattern.find("{", start + 1)
    return [pattern]


def iter_module_files(root: Path, module_glob: str = DEFAULT_MODULE_GLOB) -> List[str]:
    """
    Find the module files of a project.

    Paths with a hidden segment (e.g. `.git/`, `.cache/`) are skipped, and
    `.gitignore` files anywhere in the tree apply to the paths below them.

    Args:
        root: Project root directory.
        module_glob: Glob pattern relative to root; `**/` matches zero or
                     more directories and `{a,b}` groups are expanded.

    Returns:
        Sorted POSIX-style paths relative to root.
    """
    root = Path(root)
    found = set()

    for pattern in expand_braces(module_glob):
        if not pattern:
            continue
        for entry in root.glob(pattern):
            relative = entry.relative_to(root)
            if _is_hidden(relative) or not entry.is_file():
                continue
            found.add(relative.as_posix())

    ignores = load_gitignores(root)
    files = sorted(path for path in found if not is_ignored(path, ignores))
    logger.debug(
        "Found %d module files matching %r in %s (%d ignored)",
        len(files), module_glob, root, len(found) - len(files),
    )
    return files


def _is_hidden(relative: Path) -> bool:
    return any(part.startswith(".") for part in relative.parts)


def load_gitignores(root: Path) -> Dict[str, pathspec.GitIgnoreSpec]:
    """
    Load the `.gitignore` files of a directory tree.

    A `.gitignore` inside a directory ignored by an ancestor's patterns is
    skipped, as git never reads it.

    Args:
        root: Project root directory.

    Returns:
        Map of the POSIX directory (relative to root, "" for root itself)
        holding each `.gitignore` file to its compiled patterns.
    """
    ignores: Dict[str, pathspec.GitIgnoreSpec] = {}
    for gitignore in _iter_gitignore_files(root):
        directory = gitignore.parent.relative_to(root).as_posix()
        if directory == ".":
            directory = ""
        elif is_ignored(directory + "/", ignores):
            logger.debug("Skipping %s in an ignored directory", gitignore)
            continue
        lines = gitignore.read_text(encoding="utf-8", errors="ignore").splitlines()
        ignores[directory] = pathspec.GitIgnoreSpec.from_lines(lines)
        logger.debug("Applying %s", gitignore)
    return ignores


def _iter_gitignore_files(root: Path) -> Iterator[Path]:
    # Sorted by path parts, so ancestors come before their descendants
    for gitignore in sorted(root.rglob(GITIGNORE_FILENAME)):
        if _is_hidden(gitignore.parent.relative_to(root)):
            continue
        if gitignore.is_file():
            yield gitignore


def is_ignored(path: str, ignores: Dict[str, pathspec.GitIgnoreSpec]) -> bool:
    """
    Check if a root-relative path is ignored by the applicable `.gitignore` files.

    The `.gitignore` nearest to the path is checked first, and the first
    file with a matching pattern decides, so a nested `!pattern` can
    re-include a path a parent directory ignores.

    Args:
        path: POSIX path relative to the project root (directories end
              with `/`).
        ignores: Result of `load_gitignores`.

    Returns:
        True if the deciding pattern ignores the path.
    """
    for directory in sorted(ignores, key=len, reverse=True):
        relative = _relative_to_directory(path, directory)
        if relative is None:
            continue
        result = ignores[directory].check_file(relative)
        if result.include is not None:
            return result.include
    return False


def _relative_to_directory(path: str, directory: str) -> Optional[str]:
    if not directory:
        return path
    prefix = directory + "/"
    if path.startswith(prefix):
        return path[len(prefix):]
    return None
