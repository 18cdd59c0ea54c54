"""Helpers for addressing rate table fields with dotted paths.

Paths use the camelCase field names of the rate table document, with list
indices in brackets: ``pitBands[2].rate``, ``cit.minimumTaxRate`` or simply
``pitBands`` to replace the whole band list.
"""

from __future__ import annotations

import re
from copy import deepcopy
from numbers import Real
from typing import Any, Mapping, Sequence, Union

from .errors import UnknownFieldError, ValidationError

PathToken = Union[str, int]

_SEGMENT_PATTERN = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?P<indices>(\[\d+\])*)$")
_INDEX_PATTERN = re.compile(r"\[(\d+)\]")


def parse_path(path: str) -> tuple[PathToken, ...]:
    """Split ``path`` into mapping keys and list indices."""

    if not isinstance(path, str) or not path.strip():
        raise UnknownFieldError(str(path), "Field path must be a non-empty string")

    tokens: list[PathToken] = []
    for segment in path.strip().split("."):
        match = _SEGMENT_PATTERN.match(segment)
        if match is None:
            raise UnknownFieldError(path, f"Malformed field path '{path}'")
        tokens.append(match.group("name"))
        tokens.extend(int(index) for index in _INDEX_PATTERN.findall(match.group("indices")))
    return tuple(tokens)


def format_path(tokens: Sequence[PathToken]) -> str:
    """Inverse of :func:`parse_path`, producing the canonical spelling."""

    rendered = ""
    for token in tokens:
        if isinstance(token, int):
            rendered += f"[{token}]"
        elif rendered:
            rendered += f".{token}"
        else:
            rendered = token
    return rendered


def normalise_path(path: str) -> str:
    return format_path(parse_path(path))


def resolve(document: Any, tokens: Sequence[PathToken], *, path: str | None = None) -> Any:
    """Return the value addressed by ``tokens`` inside ``document``."""

    label = path or format_path(tokens)
    current = document
    for token in tokens:
        if isinstance(token, int):
            if not isinstance(current, list) or token >= len(current):
                raise UnknownFieldError(label)
            current = current[token]
        else:
            if not isinstance(current, Mapping) or token not in current:
                raise UnknownFieldError(label)
            current = current[token]
    return current


def assign(document: Any, tokens: Sequence[PathToken], value: Any) -> Any:
    """Return a deep copy of ``document`` with ``value`` placed at ``tokens``."""

    if not tokens:
        raise UnknownFieldError("", "Field path must address a field")

    updated = deepcopy(document)
    parent = resolve(updated, tokens[:-1])
    leaf = tokens[-1]
    if isinstance(leaf, int):
        if not isinstance(parent, list) or leaf >= len(parent):
            raise UnknownFieldError(format_path(tokens))
    elif not isinstance(parent, Mapping) or leaf not in parent:
        raise UnknownFieldError(format_path(tokens))
    parent[leaf] = deepcopy(value)
    return updated


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def check_compatible(current: Any, value: Any, *, path: str) -> None:
    """Reject ``value`` when it cannot stand in for ``current``.

    ``None`` upper bounds mark open-ended bands, so a ``None`` field accepts
    numbers and a numeric field accepts ``None`` only for ``upperBound``.
    """

    if current is None or path.endswith("upperBound"):
        if value is None or _is_number(value):
            return
        raise ValidationError(f"Field '{path}' expects a number or null", field=path)

    if _is_number(current):
        if not _is_number(value):
            raise ValidationError(f"Field '{path}' expects a number", field=path)
        return

    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise ValidationError(f"Field '{path}' expects a boolean", field=path)
        return

    if isinstance(current, str):
        if not isinstance(value, str):
            raise ValidationError(f"Field '{path}' expects a string", field=path)
        return

    if isinstance(current, list):
        if not isinstance(value, (list, tuple)):
            raise ValidationError(f"Field '{path}' expects a list", field=path)
        return

    if isinstance(current, Mapping) and not isinstance(value, Mapping):
        raise ValidationError(f"Field '{path}' expects a mapping", field=path)


__all__ = [
    "PathToken",
    "assign",
    "check_compatible",
    "format_path",
    "normalise_path",
    "parse_path",
    "resolve",
]
