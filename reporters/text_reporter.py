"""Tree-style text reporter for unused exports."""

import os
from typing import List, Optional

from usage.model import UnusedExports, display_name


# Unicode tree characters
UNICODE_BRANCH = "├── "
UNICODE_LAST = "└── "

# ASCII fallback characters
ASCII_BRANCH = "|-- "
ASCII_LAST = "\\-- "


def to_text(
    unused: UnusedExports,
    root: str,
    style: str = "tree",
) -> str:
    """
    Render unused exports grouped by module, one tree per module.

    Args:
        unused: The unused exports report.
        root: Project root; module paths are shown relative to it.
        style: Output style - "tree" (Unicode) or "ascii" (pure ASCII).

    Returns:
        The report text, empty if there are no unused exports.
    """
    if style == "ascii":
        branch, last = ASCII_BRANCH, ASCII_LAST
    else:
        branch, last = UNICODE_BRANCH, UNICODE_LAST

    groups: List[str] = []
    for path, names in unused.iter_modules():
        lines = [get_display_path(path, root)]
        for i, name in enumerate(names):
            connector = last if i == len(names) - 1 else branch
            lines.append(f"{connector}{display_name(name)}")
        groups.append("\n".join(lines))

    return "\n\n".join(groups)


def summarize(unused: UnusedExports) -> str:
    """Return a one-line count of unused exports and the modules holding them."""
    export_count = unused.export_count()
    module_count = len(unused)
    if not export_count:
        return "0 unused exports."
    return (
        f"{export_count} unused export{'' if export_count == 1 else 's'} "
        f"in {module_count} module{'' if module_count == 1 else 's'}."
    )


def get_display_path(path: str, root: Optional[str]) -> str:
    """Get the display path of a module, relative to root when inside it."""
    if root:
        relative = os.path.relpath(path, root)
        if not relative.startswith(".."):
            return relative.replace("\\", "/")
    return path.replace("\\", "/")
