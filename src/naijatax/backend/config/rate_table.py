"""Loader for the compiled-in statutory rate table."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .schema import (
    CITConfig,
    CRAConfig,
    ConfigurationError,
    ITFLevyConfig,
    LevyConfig,
    LevyRate,
    NaseniLevyConfig,
    PITBand,
    RateTable,
)
from .validator import validate_rate_table

CONFIG_DIRECTORY = Path(__file__).resolve().parent / "data"
BASE_RATES_FILE = CONFIG_DIRECTORY / "base_rates.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Rate table file must define a mapping at the top level")
    return data


def _split_document(path: Path) -> tuple[dict[str, Any], dict[str, Any]]:
    if not path.exists():
        raise FileNotFoundError(f"Rate table not found: {path}")

    raw = _load_yaml(path)
    meta = raw.pop("meta", None) or {}
    if not isinstance(meta, dict):
        raise ConfigurationError("Rate table 'meta' section must be a mapping")
    return raw, meta


def read_rate_table(path: Path) -> RateTable:
    """Parse ``path`` into a :class:`RateTable` without structural checks."""

    raw, _ = _split_document(path)
    try:
        return RateTable.model_validate(raw)
    except ValidationError as error:
        raise ConfigurationError(f"Rate table validation failed: {error}") from error


@lru_cache(maxsize=1)
def load_base_rates() -> RateTable:
    """Load, validate and cache the base rate table.

    A malformed compiled-in table is a programming error, so every issue is
    raised as :class:`ConfigurationError` rather than reported.
    """

    table = read_rate_table(BASE_RATES_FILE)
    issues = validate_rate_table(table)
    if issues:
        raise ConfigurationError(
            "Base rate table failed structural validation: " + "; ".join(issues)
        )
    return table


@lru_cache(maxsize=1)
def load_base_metadata() -> Mapping[str, Any]:
    """Expose the ``meta`` block shipped with the base rate table."""

    _, meta = _split_document(BASE_RATES_FILE)
    meta.setdefault("version", "base")
    meta.setdefault("source", BASE_RATES_FILE.name)
    return MappingProxyType({str(key): value for key, value in meta.items()})


__all__ = [
    "BASE_RATES_FILE",
    "CITConfig",
    "CONFIG_DIRECTORY",
    "CRAConfig",
    "ConfigurationError",
    "ITFLevyConfig",
    "LevyConfig",
    "LevyRate",
    "NaseniLevyConfig",
    "PITBand",
    "RateTable",
    "load_base_metadata",
    "load_base_rates",
    "read_rate_table",
]
