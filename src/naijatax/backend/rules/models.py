"""Value objects shared by the override store and the merge resolver."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Literal, Mapping

OverrideSource = Literal["remote", "api", "manual"]
OVERRIDE_SOURCES: frozenset[str] = frozenset({"remote", "api", "manual"})


@dataclass(frozen=True)
class OverrideEntry:
    """A replacement value for one rate table field, with provenance."""

    path: str
    value: Any
    source: OverrideSource
    applied_at: datetime
    version: int
    sequence: int
    actor: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-ready representation for audit displays."""

        return {
            "path": self.path,
            "value": deepcopy(self.value),
            "source": self.source,
            "appliedAt": self.applied_at.isoformat(),
            "actor": self.actor,
            "version": self.version,
        }


def _empty_entries() -> Mapping[str, OverrideEntry]:
    return MappingProxyType({})


@dataclass(frozen=True)
class OverrideSnapshot:
    """Current override per field path at a point in time.

    Snapshots are derived by the store; ``revision`` increases every time the
    store publishes a new one.
    """

    entries: Mapping[str, OverrideEntry] = field(default_factory=_empty_entries)
    revision: int = 0

    @classmethod
    def empty(cls) -> OverrideSnapshot:
        return cls()

    @classmethod
    def from_entries(
        cls, entries: Iterable[OverrideEntry], *, revision: int = 0
    ) -> OverrideSnapshot:
        """Reduce ``entries`` to the highest version per path."""

        current: dict[str, OverrideEntry] = {}
        for entry in entries:
            existing = current.get(entry.path)
            if existing is None or (entry.version, entry.sequence) > (
                existing.version,
                existing.sequence,
            ):
                current[entry.path] = entry
        return cls(entries=MappingProxyType(current), revision=revision)

    def __contains__(self, path: object) -> bool:
        return path in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, path: str) -> OverrideEntry | None:
        return self.entries.get(path)

    def ordered(self) -> list[OverrideEntry]:
        """Entries in the order they were written."""

        return sorted(self.entries.values(), key=lambda entry: entry.sequence)

    def values(self) -> dict[str, Any]:
        return {entry.path: deepcopy(entry.value) for entry in self.ordered()}

    def as_dict(self) -> dict[str, Any]:
        return {
            "revision": self.revision,
            "overrides": [entry.as_dict() for entry in self.ordered()],
        }


__all__ = [
    "OVERRIDE_SOURCES",
    "OverrideEntry",
    "OverrideSnapshot",
    "OverrideSource",
]
