"""Facade tying the base table, override store, refresh cache and merge together."""

from __future__ import annotations

import logging
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Mapping

from naijatax.backend.config.rate_table import RateTable, load_base_metadata, load_base_rates

from .errors import ValidationError
from .merge import EffectiveConfig, merge
from .models import OverrideEntry, OverrideSnapshot
from .remote import HttpRateAuthority, RefreshState, RemoteRateAuthority, RemoteRefreshCache
from .settings import EngineSettings
from .store import OverrideStore

_LOGGER = logging.getLogger(__name__)


class TaxRuleEngine:
    """Serve effective tax configuration to calculators and administrators."""

    def __init__(
        self,
        base: RateTable,
        store: OverrideStore,
        refresher: RemoteRefreshCache | None = None,
        *,
        base_metadata: Mapping[str, Any] | None = None,
        remote_url: str | None = None,
    ) -> None:
        self._base = base
        self._store = store
        self._refresher = refresher
        self._base_metadata = dict(base_metadata or {})
        self._remote_url = remote_url
        self._cached: EffectiveConfig | None = None
        self._lock = Lock()

    @property
    def base(self) -> RateTable:
        return self._base

    @property
    def store(self) -> OverrideStore:
        return self._store

    @property
    def refresher(self) -> RemoteRefreshCache | None:
        return self._refresher

    def get_override_snapshot(self) -> OverrideSnapshot:
        return self._store.snapshot()

    def get_effective_config(self) -> EffectiveConfig:
        """Return the merged configuration, refreshing remote rates when due."""

        if self._refresher is not None:
            snapshot = self._refresher.ensure_fresh()
        else:
            snapshot = self._store.snapshot()

        cached = self._cached
        if cached is not None and cached.revision == snapshot.revision:
            return cached

        effective = merge(self._base, snapshot)
        with self._lock:
            current = self._cached
            if current is None or current.revision < effective.revision:
                self._cached = effective
        return effective

    def apply_overrides(
        self,
        payload: Mapping[str, Any],
        actor: str | None = None,
        source: str = "api",
    ) -> dict[str, int]:
        """Apply every ``path -> value`` pair in ``payload`` or none of them."""

        if not isinstance(payload, Mapping):
            raise ValidationError("Overrides must be a mapping of field paths to values")
        if not payload:
            raise ValidationError("At least one override must be provided")

        versions = self._store.apply_batch(payload, source, actor)
        _LOGGER.info(
            "Accepted %s override(s) from %s (actor %s)", len(versions), source, actor
        )
        return versions

    def history(self, path: str | None = None) -> tuple[OverrideEntry, ...]:
        if path:
            return self._store.history_for(path)
        return self._store.history()

    def refresh_now(self) -> RefreshState | None:
        """Force a remote refresh; ``None`` when no remote authority is configured."""

        if self._refresher is None:
            return None
        return self._refresher.refresh(force=True)

    def refresh_status(self) -> str:
        if self._refresher is None:
            return "disabled"
        return self._refresher.status()

    def get_metadata(self, effective: EffectiveConfig | None = None) -> dict[str, Any]:
        """Describe ``effective`` (the current configuration by default)."""

        if effective is None:
            effective = self.get_effective_config()
        state = self._refresher.state if self._refresher is not None else None
        last_refresh: datetime | None = state.last_success_at if state else None

        return {
            "ratesVersionSummary": {
                "base": self._base_metadata.get("version"),
                "baseSource": self._base_metadata.get("source"),
                **effective.version_summary,
            },
            "lastRefreshAt": last_refresh.isoformat() if last_refresh else None,
            "refreshStatus": self.refresh_status(),
            "overrideCount": len(effective.applied),
            "consecutiveFailures": state.consecutive_failure_count if state else 0,
            "remoteUrl": self._remote_url,
        }

    def close(self) -> None:
        if self._refresher is not None:
            self._refresher.close()


def build_engine(
    settings: EngineSettings | None = None,
    *,
    authority: RemoteRateAuthority | None = None,
    base: RateTable | None = None,
    clock: Callable[[], datetime] | None = None,
) -> TaxRuleEngine:
    """Create the process-wide engine from ``settings`` (environment by default)."""

    settings = settings or EngineSettings.from_env()
    base = base or load_base_rates()
    store = OverrideStore(base, history_limit=settings.history_limit, clock=clock)

    if authority is None and settings.remote_url:
        authority = HttpRateAuthority(
            settings.remote_url, timeout=settings.refresh_timeout_seconds
        )

    refresher = None
    if authority is not None:
        refresher = RemoteRefreshCache(
            store,
            authority,
            ttl_seconds=settings.refresh_ttl_seconds,
            timeout_seconds=settings.refresh_timeout_seconds,
            backoff_base_seconds=settings.backoff_base_seconds,
            backoff_max_seconds=settings.backoff_max_seconds,
            clock=clock,
        )
    else:
        _LOGGER.info("No remote rate authority configured; overrides are local only")

    return TaxRuleEngine(
        base,
        store,
        refresher,
        base_metadata=load_base_metadata(),
        remote_url=settings.remote_url,
    )


__all__ = ["TaxRuleEngine", "build_engine"]
