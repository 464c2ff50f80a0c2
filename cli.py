#!/usr/bin/env python3
"""
find-unused-exports CLI

Finds ECMAScript module exports that aren't imported by any other module in
a project, and exits with a failure status if there are any.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from exportscan.builder import build_report
from exportscan.config import find_config_file, load_config
from exportscan.errors import ConfigurationError, FindUnusedExportsError
from exportscan.options import validate_options
from reporters import to_text, to_json, summarize
from usage.model import AliasRule


def parse_args(args=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="find-unused-exports",
        description="Find unused ECMAScript module exports in a project.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  find-unused-exports                                   # Scan current directory
  find-unused-exports --module-glob '**/*.{js,jsx}'     # Custom module files
  find-unused-exports --resolve-file-extensions mjs,js --resolve-index-files
  find-unused-exports --aliases @root=.,~=src           # Resolve aliased imports
  find-unused-exports -f json -o unused.json            # JSON output to file
        """,
    )

    # Positional arguments
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Project root directory (default: current directory)",
    )

    # Resolution options
    parser.add_argument(
        "--module-glob",
        type=str,
        default=None,
        help="Module file glob pattern (default: **/*.{mjs,cjs,js})",
    )

    parser.add_argument(
        "--resolve-file-extensions",
        type=str,
        default=None,
        help="Comma-separated file extensions (without the leading '.', in "
             "preference order) to resolve in extensionless import specifiers",
    )

    parser.add_argument(
        "--resolve-index-files",
        action="store_true",
        default=None,
        help="Resolve directory index files in extensionless import specifiers "
             "(requires --resolve-file-extensions, given here or in a config file)",
    )

    parser.add_argument(
        "--aliases",
        type=str,
        default=None,
        help="Comma-separated prefix=path pairs; specifiers starting with a "
             "prefix resolve against the path (relative to the root)",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Config file (default: [tool.find-unused-exports] in pyproject.toml, "
             "or .find-unused-exports.{yaml,yml,json} in the root)",
    )

    # Output options
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output file (default: report on stderr, JSON on stdout)",
    )

    parser.add_argument(
        "-f", "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )

    parser.add_argument(
        "--style",
        choices=["tree", "ascii"],
        default="tree",
        help="Text output style: 'tree' (Unicode) or 'ascii' (pure ASCII)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug messages to stderr",
    )

    return parser.parse_args(args)


def parse_mapping(value: str) -> List[AliasRule]:
    """
    Parse comma-separated `prefix=path` pairs, keeping their order.

    Raises:
        ConfigurationError: If a pair has no `=` or an empty prefix.
    """
    rules: List[AliasRule] = []
    for pair in value.split(","):
        prefix, separator, path = pair.partition("=")
        prefix = prefix.strip()
        if not separator or not prefix:
            raise ConfigurationError(f"Invalid alias '{pair}', expected 'prefix=path'.")
        rules.append(AliasRule(prefix, path.strip()))
    return rules


def collect_options(parsed, root: Path) -> Dict[str, Any]:
    """Merge config file options with command line arguments, which win."""
    config_path: Optional[Path] = None
    if parsed.config:
        config_path = Path(parsed.config)
    else:
        config_path = find_config_file(root)

    options: Dict[str, Any] = load_config(config_path) if config_path else {}

    if parsed.module_glob is not None:
        options["module_glob"] = parsed.module_glob
    if parsed.resolve_file_extensions is not None:
        options["resolve_file_extensions"] = [
            extension.strip() for extension in parsed.resolve_file_extensions.split(",")
        ]
    if parsed.resolve_index_files is not None:
        if not options.get("resolve_file_extensions"):
            raise ConfigurationError(
                "The `--resolve-index-files` flag can only be used with the "
                "`--resolve-file-extensions` argument."
            )
        options["resolve_index_files"] = True
    if parsed.aliases is not None:
        options["aliases"] = parse_mapping(parsed.aliases)

    return options


def main(args=None):
    """Main entry point."""
    parsed = parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    root = Path(parsed.root).resolve()
    if not root.is_dir():
        print(f"Error: '{parsed.root}' is not a directory", file=sys.stderr)
        return 1

    # Find the unused exports
    try:
        options = validate_options(cwd=str(root), **collect_options(parsed, root))
        unused = build_report(options)
    except (FindUnusedExportsError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Generate output
    if parsed.format == "json":
        output = to_json(unused, root=options.cwd)
    else:
        report = to_text(unused, root=options.cwd, style=parsed.style)
        output = f"{report}\n\n{summarize(unused)}" if report else summarize(unused)

    # Write output
    if parsed.output:
        try:
            output_path = Path(parsed.output)
            output_path.write_text(output + "\n", encoding="utf-8")
            print(f"Output written to: {output_path}", file=sys.stderr)
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1
    elif parsed.format == "json":
        print(output)
    elif unused:
        print(output, file=sys.stderr)
    else:
        print(output)

    return 1 if unused else 0


if __name__ == "__main__":
    sys.exit(main())
