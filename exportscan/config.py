"""Loading option defaults from project configuration files."""

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigurationError


logger = logging.getLogger(__name__)

PYPROJECT_TABLE = "find-unused-exports"

# Searched in order when no configuration file is given explicitly
CONFIG_FILENAMES = [
    "pyproject.toml",
    ".find-unused-exports.yaml",
    ".find-unused-exports.yml",
    ".find-unused-exports.json",
]

# Accepted keys, in either CLI or Python spelling, to option names
CONFIG_KEYS = {
    "module-glob": "module_glob",
    "module_glob": "module_glob",
    "resolve-file-extensions": "resolve_file_extensions",
    "resolve_file_extensions": "resolve_file_extensions",
    "resolve-index-files": "resolve_index_files",
    "resolve_index_files": "resolve_index_files",
    "aliases": "aliases",
}


def parse_config_file(file_path: Path) -> Any:
    """
    Parse a configuration file by its suffix.

    Args:
        file_path: Path to a `.toml`, `.yaml`/`.yml` or `.json` file.

    Returns:
        The parsed data.

    Raises:
        ConfigurationError: If the file can't be read or parsed.
    """
    suffix = file_path.suffix.lower()

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Unable to read config file '{file_path}': {e}") from e

    try:
        if suffix == ".toml":
            return tomllib.loads(content)
        elif suffix in {".yaml", ".yml"}:
            return yaml.safe_load(content)
        elif suffix == ".json":
            return json.loads(content)
    except (tomllib.TOMLDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{file_path}': {e}") from e

    raise ConfigurationError(f"Unsupported config file type '{file_path.name}'")


def find_config_file(root: Path) -> Optional[Path]:
    """
    Find the configuration file of a project.

    A `pyproject.toml` only counts if it has a `[tool.find-unused-exports]`
    table.

    Args:
        root: Project root directory.

    Returns:
        Path of the first configuration file found, or None.
    """
    for filename in CONFIG_FILENAMES:
        candidate = root / filename
        if not candidate.is_file():
            continue
        if filename == "pyproject.toml":
            data = parse_config_file(candidate)
            if PYPROJECT_TABLE not in data.get("tool", {}):
                continue
        return candidate
    return None


def load_config(file_path: Path) -> Dict[str, Any]:
    """
    Load option defaults from a configuration file.

    Args:
        file_path: Configuration file; for `pyproject.toml` the
                   `[tool.find-unused-exports]` table is used.

    Returns:
        Option name -> value, with `resolve_file_extensions` given as a
        comma-separated string split into a list.

    Raises:
        ConfigurationError: If the file is invalid or has unknown keys.
    """
    data = parse_config_file(file_path)
    if file_path.name == "pyproject.toml":
        data = data.get("tool", {}).get(PYPROJECT_TABLE, {})
    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file '{file_path}' must contain a mapping")

    config: Dict[str, Any] = {}
    for key, value in data.items():
        option = CONFIG_KEYS.get(key)
        if option is None:
            raise ConfigurationError(f"Unknown config key '{key}' in '{file_path}'")
        if option == "resolve_file_extensions" and isinstance(value, str):
            value = [extension.strip() for extension in value.split(",")]
        config[option] = value

    logger.debug("Loaded %s from %s", sorted(config), file_path)
    return config
