"""YAML settings source with include: directive support."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from repobridge.core.log import logger

CONFIG_FILENAME = "repobridge.yaml"


def cli_includes(argv: list[str] | None = None) -> list[str]:
    """Collect --include values from argv ahead of CLI parsing."""
    argv = sys.argv if argv is None else argv
    includes = []
    i = 1
    while i < len(argv):
        if argv[i] == "--include" and i + 1 < len(argv):
            includes.append(argv[i + 1])
            i += 1
        elif argv[i].startswith("--include="):
            includes.append(argv[i].split("=", 1)[1])
        i += 1
    return includes


def deep_merge(base: dict, override: dict) -> dict:
    """Return base with override merged in; override wins."""
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """YAML source reading user, project and --include files.

    Merge order, later wins:
        user config < ./repobridge.yaml < --include files

    Each file may itself name further files under an include: key,
    resolved relative to the including file. Included data is the
    base that the including file overrides.
    """

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        includes = cli_includes()
        super().__init__(settings_cls, includes or yaml_file)

    def _read_files(self, files, *args, **kwargs):  # noqa: ARG002
        candidates = [
            Path(user_config_dir("repobridge", appauthor=False))
            / CONFIG_FILENAME,
            Path(CONFIG_FILENAME),
        ]
        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            candidates.extend(Path(f).expanduser() for f in files)

        result = {}
        for path in candidates:
            if not path.is_file():
                logger.debug(
                    "Configuration file not found (skipping)",
                    file=str(path),
                )
                continue
            logger.debug("Loading configuration", file=str(path))
            result = deep_merge(result, self.load_file(path, set()))
        return result

    def load_file(self, path: Path, visited: set[Path]) -> dict:
        """Load one YAML file and everything it includes.

        Raises:
            ValueError: If the include chain loops back on itself
        """
        path = path.resolve()
        if path in visited:
            raise ValueError(f"Circular include: {path}")
        visited = visited | {path}

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        includes = data.pop("include", None) or []
        if isinstance(includes, str):
            includes = [includes]

        merged: dict = {}
        for inc in includes:
            inc_path = Path(inc).expanduser()
            if not inc_path.is_absolute():
                inc_path = path.parent / inc_path
            merged = deep_merge(merged, self.load_file(inc_path, visited))
        return deep_merge(merged, data)
