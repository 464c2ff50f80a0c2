"""JSON reporter for unused exports (machine-friendly format)."""

import json
from typing import Any, Dict, List

from usage.model import UnusedExports, display_name
from .text_reporter import get_display_path


def to_json(
    unused: UnusedExports,
    root: str,
    indent: int = 2,
) -> str:
    """
    Convert an unused exports report to JSON.

    Args:
        unused: The unused exports report.
        root: Project root for relative module paths.
        indent: JSON indentation level.

    Returns:
        JSON object with a `modules` map (module path -> unused export names)
        and `summary` counts.
    """
    modules: Dict[str, List[str]] = {}
    for path, names in unused.iter_modules():
        modules[get_display_path(path, root)] = [display_name(name) for name in names]

    data: Dict[str, Any] = {
        "modules": modules,
        "summary": {
            "modules": len(unused),
            "exports": unused.export_count(),
        },
    }

    return json.dumps(data, indent=indent)
