"""Project version lookup shared by the health endpoint and the CLI."""

from __future__ import annotations

import tomllib
from functools import lru_cache
from importlib import metadata
from pathlib import Path
from typing import Final

DISTRIBUTION_NAME: Final = "naijatax"
PYPROJECT_PATH: Final = Path(__file__).resolve().parents[3] / "pyproject.toml"


@lru_cache(maxsize=1)
def get_project_version() -> str:
    """Return the installed distribution version or the checkout version."""

    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        pass

    try:
        with PYPROJECT_PATH.open("rb") as handle:
            project = tomllib.load(handle).get("project", {})
    except FileNotFoundError:  # pragma: no cover - repository invariant
        return "0+unknown"
    return str(project.get("version") or "0+unknown")


__all__ = ["get_project_version"]
