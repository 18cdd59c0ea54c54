"""Thread-safe, versioned store of rate table overrides with an audit trail."""

from __future__ import annotations

import logging
from collections import deque
from copy import deepcopy
from datetime import datetime, timezone
from threading import Lock
from types import MappingProxyType
from typing import Any, Callable, Deque, Mapping, Sequence

from naijatax.backend.config.schema import RateTable

from .errors import ConfigIntegrityError, ValidationError
from .merge import merge, substitute
from .models import OVERRIDE_SOURCES, OverrideEntry, OverrideSnapshot
from .paths import format_path, parse_path

_LOGGER = logging.getLogger(__name__)

_PendingOverride = tuple[str, Any, int | None]


def _plain(value: Any) -> Any:
    """Copy ``value`` into plain JSON-like containers."""

    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return deepcopy(value)


def _check_version(version: Any, path: str) -> int | None:
    if version is None:
        return None
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ValidationError(
            f"Override version for '{path}' must be a positive integer", field=path
        )
    return version


class OverrideStore:
    """Process-wide owner of the override history and the current snapshot.

    Writers are serialised by a lock and publish a brand new snapshot once an
    override is fully validated, so readers calling :meth:`snapshot` without
    the lock always observe a complete state.
    """

    def __init__(
        self,
        base: RateTable,
        *,
        history_limit: int | None = 500,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if history_limit is not None and history_limit <= 0:
            raise ValueError("history_limit must be positive when provided")

        self._base = base
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._history: Deque[OverrideEntry] = deque(maxlen=history_limit)
        self._snapshot = OverrideSnapshot.empty()
        self._sequence = 0
        self._lock = Lock()

    @property
    def base(self) -> RateTable:
        return self._base

    def snapshot(self) -> OverrideSnapshot:
        """Return the most recently published snapshot."""

        return self._snapshot

    def apply_override(
        self,
        path: str,
        value: Any,
        source: str,
        actor: str | None = None,
        *,
        version: int | None = None,
    ) -> int:
        """Validate and record a new value for ``path``; return its version.

        An explicit ``version`` that is not newer than the current one is a
        stale write and leaves the store untouched.
        """

        return self._commit([(path, value, version)], source, actor)[0]

    def apply_batch(
        self,
        overrides: Mapping[str, Any],
        source: str,
        actor: str | None = None,
    ) -> dict[str, int]:
        """Apply every override in ``overrides`` or none of them."""

        pending = [(path, value, None) for path, value in overrides.items()]
        versions = self._commit(pending, source, actor)
        return {
            format_path(parse_path(path)): version
            for (path, _, _), version in zip(pending, versions)
        }

    def history(self) -> tuple[OverrideEntry, ...]:
        with self._lock:
            return tuple(self._history)

    def history_for(self, path: str) -> tuple[OverrideEntry, ...]:
        """Return retained entries for ``path``, oldest first."""

        canonical = format_path(parse_path(path))
        with self._lock:
            return tuple(entry for entry in self._history if entry.path == canonical)

    def _commit(
        self,
        pending: Sequence[_PendingOverride],
        source: str,
        actor: str | None,
    ) -> list[int]:
        if source not in OVERRIDE_SOURCES:
            allowed = ", ".join(sorted(OVERRIDE_SOURCES))
            raise ValidationError(f"Override source must be one of: {allowed}")
        if not pending:
            return []

        prepared = []
        for path, value, version in pending:
            canonical = format_path(parse_path(path))
            prepared.append((canonical, _plain(value), _check_version(version, canonical)))

        staged: list[OverrideEntry] = []
        versions: list[int] = []

        with self._lock:
            snapshot = self._snapshot
            entries = dict(snapshot.entries)
            document = merge(self._base, snapshot).rates.as_document()
            now = self._clock()

            for path, value, version in prepared:
                current = entries.get(path)
                current_version = current.version if current is not None else 0
                if version is not None and version <= current_version:
                    _LOGGER.debug(
                        "Ignoring stale override for %s (version %s <= %s)",
                        path,
                        version,
                        current_version,
                    )
                    versions.append(current_version)
                    continue

                try:
                    document = substitute(document, path, value)
                except ConfigIntegrityError as error:
                    raise ValidationError(str(error), field=path) from error

                entry = OverrideEntry(
                    path=path,
                    value=value,
                    source=source,  # type: ignore[arg-type]
                    applied_at=now,
                    version=version if version is not None else current_version + 1,
                    sequence=self._sequence + len(staged) + 1,
                    actor=actor,
                )
                entries[path] = entry
                staged.append(entry)
                versions.append(entry.version)

            if staged:
                self._sequence += len(staged)
                self._history.extend(staged)
                self._snapshot = OverrideSnapshot(
                    entries=MappingProxyType(entries),
                    revision=snapshot.revision + 1,
                )

        for entry in staged:
            _LOGGER.info(
                "Applied override %s=%r (version %s, source %s, actor %s)",
                entry.path,
                entry.value,
                entry.version,
                entry.source,
                entry.actor,
            )

        return versions


__all__ = ["OverrideStore"]
