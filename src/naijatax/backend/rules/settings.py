"""Environment driven settings for the tax rule engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

_LOGGER = logging.getLogger(__name__)

REMOTE_URL_ENV = "NAIJATAX_RULES_REMOTE_URL"
REFRESH_TTL_ENV = "NAIJATAX_RULES_REFRESH_TTL"
REFRESH_TIMEOUT_ENV = "NAIJATAX_RULES_REFRESH_TIMEOUT"
BACKOFF_BASE_ENV = "NAIJATAX_RULES_BACKOFF_BASE"
BACKOFF_MAX_ENV = "NAIJATAX_RULES_BACKOFF_MAX"
HISTORY_LIMIT_ENV = "NAIJATAX_OVERRIDE_HISTORY_LIMIT"


def _parse_positive_int(value: str | None, *, env: str) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value)
    except ValueError:
        _LOGGER.warning("Ignoring invalid value for %s: %s", env, value)
        return None
    if parsed <= 0:
        _LOGGER.warning("Ignoring non-positive value for %s: %s", env, value)
        return None
    return parsed


def _parse_positive_float(value: str | None, *, env: str) -> float | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = float(value)
    except ValueError:
        _LOGGER.warning("Ignoring invalid value for %s: %s", env, value)
        return None
    if not parsed > 0 or parsed == float("inf"):
        _LOGGER.warning("Ignoring non-positive value for %s: %s", env, value)
        return None
    return parsed


@dataclass(frozen=True)
class EngineSettings:
    remote_url: str | None = None
    refresh_ttl_seconds: float = 15 * 60
    refresh_timeout_seconds: float = 5.0
    backoff_base_seconds: float = 30.0
    backoff_max_seconds: float = 60 * 60
    history_limit: int = 500

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_url)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineSettings:
        """Read settings from ``environ`` (``os.environ`` by default).

        Unset, malformed and non-positive values fall back to the defaults.
        """

        source = os.environ if environ is None else environ
        defaults = cls()

        remote_url = (source.get(REMOTE_URL_ENV) or "").strip() or None
        ttl = _parse_positive_float(source.get(REFRESH_TTL_ENV), env=REFRESH_TTL_ENV)
        timeout = _parse_positive_float(
            source.get(REFRESH_TIMEOUT_ENV), env=REFRESH_TIMEOUT_ENV
        )
        backoff_base = _parse_positive_float(
            source.get(BACKOFF_BASE_ENV), env=BACKOFF_BASE_ENV
        )
        backoff_max = _parse_positive_float(source.get(BACKOFF_MAX_ENV), env=BACKOFF_MAX_ENV)
        history_limit = _parse_positive_int(
            source.get(HISTORY_LIMIT_ENV), env=HISTORY_LIMIT_ENV
        )

        base = backoff_base if backoff_base is not None else defaults.backoff_base_seconds
        ceiling = backoff_max if backoff_max is not None else defaults.backoff_max_seconds
        if ceiling < base:
            _LOGGER.warning(
                "Ignoring %s=%s because it is below the back-off base of %s seconds",
                BACKOFF_MAX_ENV,
                ceiling,
                base,
            )
            ceiling = max(base, defaults.backoff_max_seconds)

        return cls(
            remote_url=remote_url,
            refresh_ttl_seconds=ttl if ttl is not None else defaults.refresh_ttl_seconds,
            refresh_timeout_seconds=(
                timeout if timeout is not None else defaults.refresh_timeout_seconds
            ),
            backoff_base_seconds=base,
            backoff_max_seconds=ceiling,
            history_limit=(
                history_limit if history_limit is not None else defaults.history_limit
            ),
        )


__all__ = ["EngineSettings"]
