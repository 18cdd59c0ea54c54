"""Reconcile the base rate table with the current overrides.

Overrides are applied in write order onto a JSON-shaped copy of the base
table. Every substitution is re-validated; one that would leave the table
structurally invalid is dropped with a warning so the configuration handed to
calculators is always usable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import ValidationError as SchemaValidationError

from naijatax.backend.config.schema import RateTable
from naijatax.backend.config.validator import validate_rate_table

from .errors import ConfigIntegrityError, UnknownFieldError, ValidationError
from .models import OverrideEntry, OverrideSnapshot
from .paths import assign, check_compatible, parse_path, resolve

_LOGGER = logging.getLogger(__name__)


def _describe_schema_error(error: SchemaValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or str(error)


def build_table(document: Mapping[str, Any], *, field: str | None = None) -> RateTable:
    """Validate ``document`` into a :class:`RateTable` or raise."""

    try:
        table = RateTable.model_validate(document)
    except SchemaValidationError as error:
        raise ConfigIntegrityError(_describe_schema_error(error), field=field) from error

    issues = validate_rate_table(table)
    if issues:
        raise ConfigIntegrityError("; ".join(issues), field=field)
    return table


def substitute(document: Mapping[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Return a validated copy of ``document`` with ``value`` placed at ``path``.

    Raises :class:`UnknownFieldError` for unresolvable paths,
    :class:`ValidationError` for type mismatches and
    :class:`ConfigIntegrityError` when the resulting table is invalid.
    """

    tokens = parse_path(path)
    current = resolve(document, tokens, path=path)
    check_compatible(current, value, path=path)
    candidate = assign(document, tokens, value)
    build_table(candidate, field=path)
    return candidate


@dataclass(frozen=True)
class EffectiveConfig:
    """Immutable, fully merged configuration handed to calculators."""

    rates: RateTable
    applied: Mapping[str, OverrideEntry] = field(
        default_factory=lambda: MappingProxyType({})
    )
    dropped: tuple[tuple[str, str], ...] = ()
    revision: int = 0

    @property
    def version_summary(self) -> dict[str, Any]:
        return {
            "revision": self.revision,
            "overrides": {path: entry.version for path, entry in self.applied.items()},
            "dropped": [path for path, _ in self.dropped],
        }

    def describe(self) -> dict[str, Any]:
        """Return rates and provenance in a JSON-ready form."""

        return {
            "rates": self.rates.as_document(),
            "applied": [entry.as_dict() for entry in self.applied.values()],
            "dropped": [{"path": path, "reason": reason} for path, reason in self.dropped],
            "revision": self.revision,
        }


def merge(base: RateTable, snapshot: OverrideSnapshot) -> EffectiveConfig:
    """Combine ``base`` and ``snapshot`` into a fresh :class:`EffectiveConfig`."""

    if not snapshot.entries:
        return EffectiveConfig(rates=base, revision=snapshot.revision)

    document = base.as_document()
    applied: dict[str, OverrideEntry] = {}
    dropped: list[tuple[str, str]] = []

    for entry in snapshot.ordered():
        try:
            document = substitute(document, entry.path, entry.value)
        except (ConfigIntegrityError, UnknownFieldError, ValidationError) as error:
            integrity_error = (
                error
                if isinstance(error, ConfigIntegrityError)
                else ConfigIntegrityError(str(error), field=entry.path)
            )
            _LOGGER.warning(
                "Dropping override for %s (version %s, source %s): %s",
                entry.path,
                entry.version,
                entry.source,
                integrity_error,
            )
            dropped.append((entry.path, str(integrity_error)))
            continue
        applied[entry.path] = entry

    return EffectiveConfig(
        rates=build_table(document),
        applied=MappingProxyType(applied),
        dropped=tuple(dropped),
        revision=snapshot.revision,
    )


__all__ = ["EffectiveConfig", "build_table", "merge", "substitute"]
