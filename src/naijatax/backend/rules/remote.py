"""Remote rate authority client and the cached refresh state machine.

The cache serves the current override snapshot while it is fresh, fetches
deltas from the remote authority once the TTL lapses, and backs off
exponentially after failures. A refresh failure never reaches a caller that
only wants a configuration: the previous snapshot stays authoritative.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from threading import Event, Lock
from typing import Any, Callable, Mapping, Protocol, Sequence

import httpx

from .errors import RefreshTransportError, UnknownFieldError, ValidationError
from .models import OverrideSnapshot
from .paths import normalise_path
from .store import OverrideStore

_LOGGER = logging.getLogger(__name__)

# Upper bound on concurrent fetches, including ones abandoned after a timeout.
_REFRESH_WORKERS = 4
_UNSET = object()

# Keys of the flat override document published by the legacy rules endpoint.
_LEGACY_SCALAR_PATHS: Mapping[str, str] = {
    "craFixedAmount": "cra.fixedAmount",
    "craPercentageOfGross": "cra.percentageOfGross",
    "craAdditionalPercentage": "cra.additionalPercentage",
    "vatRate": "vatRate",
    "cgtRate": "cgtRate",
    "minimumTaxRate": "cit.minimumTaxRate",
}
_LEGACY_METADATA_KEYS = frozenset({"version", "source", "lastUpdated", "remoteUrl"})


@dataclass(frozen=True)
class RemoteDelta:
    """A single ``(path, value)`` pair published by the remote authority."""

    path: str
    value: Any
    version: int | None = None


@dataclass(frozen=True)
class RemoteFetchResult:
    deltas: tuple[RemoteDelta, ...]
    source_timestamp: datetime | None = None


class RemoteRateAuthority(Protocol):
    """Narrow interface onto whatever publishes current statutory rates."""

    def fetch_remote_overrides(self) -> RemoteFetchResult:
        """Return current deltas or raise :class:`RefreshTransportError`."""


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise RefreshTransportError("Remote timestamp must be an ISO 8601 string")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as error:
        raise RefreshTransportError(f"Invalid remote timestamp: {value!r}") from error
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _legacy_bands(bands: Any) -> list[dict[str, Any]]:
    """Translate ``{label, upperLimit, rate}`` bands into rate table bands."""

    if not isinstance(bands, Sequence) or isinstance(bands, (str, bytes)):
        raise RefreshTransportError("Remote 'pitBands' must be a list")

    translated: list[dict[str, Any]] = []
    lower = 0.0
    for band in bands:
        if not isinstance(band, Mapping):
            raise RefreshTransportError("Remote PIT bands must be objects")
        if "lowerBound" in band:
            translated.append(dict(band))
            continue
        upper = band.get("upperLimit")
        if upper in (None, "Infinity", "inf") or upper == float("inf"):
            upper = None
        translated.append(
            {
                "label": str(band.get("label", "")),
                "lowerBound": lower,
                "upperBound": upper,
                "rate": band.get("rate"),
            }
        )
        if upper is not None:
            lower = upper
    return translated


def _legacy_deltas(payload: Mapping[str, Any]) -> list[RemoteDelta]:
    deltas: list[RemoteDelta] = []
    for key, value in payload.items():
        if key in _LEGACY_METADATA_KEYS or value is None:
            continue
        if key == "pitBands":
            deltas.append(RemoteDelta("pitBands", _legacy_bands(value)))
        elif key == "citConfig":
            if not isinstance(value, Mapping):
                raise RefreshTransportError("Remote 'citConfig' must be an object")
            deltas.extend(
                RemoteDelta(f"cit.{name}", item)
                for name, item in value.items()
                if item is not None
            )
        elif key in _LEGACY_SCALAR_PATHS:
            deltas.append(RemoteDelta(_LEGACY_SCALAR_PATHS[key], value))
        else:
            deltas.append(RemoteDelta(str(key), value))
    return deltas


def parse_remote_payload(payload: Any) -> RemoteFetchResult:
    """Decode the JSON document returned by the remote authority."""

    if not isinstance(payload, Mapping):
        raise RefreshTransportError("Remote payload must be a JSON object")

    timestamp = _parse_timestamp(payload.get("lastUpdated", payload.get("sourceTimestamp")))
    overrides = payload.get("overrides")

    if overrides is None:
        return RemoteFetchResult(tuple(_legacy_deltas(payload)), timestamp)

    deltas: list[RemoteDelta] = []
    if isinstance(overrides, Mapping):
        deltas = [RemoteDelta(str(path), value) for path, value in overrides.items()]
    elif isinstance(overrides, Sequence) and not isinstance(overrides, (str, bytes)):
        for item in overrides:
            if not isinstance(item, Mapping) or "path" not in item or "value" not in item:
                raise RefreshTransportError(
                    "Remote override entries must define 'path' and 'value'"
                )
            version = item.get("version")
            if version is not None and (
                isinstance(version, bool) or not isinstance(version, int)
            ):
                raise RefreshTransportError("Remote override versions must be integers")
            deltas.append(RemoteDelta(str(item["path"]), item["value"], version))
    else:
        raise RefreshTransportError("Remote 'overrides' must be an object or a list")

    return RemoteFetchResult(tuple(deltas), timestamp)


class HttpRateAuthority:
    """Fetch override deltas from an HTTP endpoint with ``httpx``."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not url:
            raise ValueError("url must be provided")
        self.url = url
        self._timeout = timeout
        self._client = client

    def fetch_remote_overrides(self) -> RemoteFetchResult:
        try:
            if self._client is not None:
                response = self._client.get(self.url, timeout=self._timeout)
            else:
                response = httpx.get(self.url, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as error:
            raise RefreshTransportError(
                f"Unable to fetch remote tax rules from {self.url}: {error}"
            ) from error
        except ValueError as error:
            raise RefreshTransportError(
                f"Remote tax rules from {self.url} are not valid JSON"
            ) from error

        return parse_remote_payload(payload)


@dataclass
class _Attempt:
    future: Future[RemoteFetchResult]
    finished: Event = field(default_factory=Event)


@dataclass(frozen=True)
class RefreshState:
    """Bookkeeping owned by :class:`RemoteRefreshCache`."""

    last_fetched_at: datetime | None = None
    last_success_at: datetime | None = None
    consecutive_failure_count: int = 0
    next_eligible_fetch_at: datetime | None = None
    last_error: str | None = None
    last_warnings: tuple[str, ...] = ()
    last_source_timestamp: datetime | None = None
    applied_count: int = 0

    def as_dict(self) -> dict[str, Any]:
        def _iso(value: datetime | None) -> str | None:
            return value.isoformat() if value is not None else None

        return {
            "lastFetchedAt": _iso(self.last_fetched_at),
            "lastSuccessAt": _iso(self.last_success_at),
            "consecutiveFailureCount": self.consecutive_failure_count,
            "nextEligibleFetchAt": _iso(self.next_eligible_fetch_at),
            "lastError": self.last_error,
            "warnings": list(self.last_warnings),
            "sourceTimestamp": _iso(self.last_source_timestamp),
            "appliedCount": self.applied_count,
        }


class RemoteRefreshCache:
    """Lazily refresh the override store from a remote authority."""

    def __init__(
        self,
        store: OverrideStore,
        authority: RemoteRateAuthority,
        *,
        ttl_seconds: float = 900.0,
        timeout_seconds: float | None = 5.0,
        backoff_base_seconds: float = 30.0,
        backoff_max_seconds: float = 3600.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive when provided")
        if backoff_base_seconds <= 0 or backoff_max_seconds < backoff_base_seconds:
            raise ValueError("backoff bounds must be positive and ordered")

        self._store = store
        self._authority = authority
        self._ttl = timedelta(seconds=ttl_seconds)
        self._timeout = timeout_seconds
        self._backoff_base = backoff_base_seconds
        self._backoff_max = backoff_max_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._state = RefreshState()
        self._inflight: _Attempt | None = None
        self._abandoned: set[Future[RemoteFetchResult]] = set()
        self._published: dict[str, Any] = {}
        self._executor = ThreadPoolExecutor(
            max_workers=_REFRESH_WORKERS, thread_name_prefix="naijatax-rates-refresh"
        )
        self._lock = Lock()

    @property
    def state(self) -> RefreshState:
        return self._state

    def backoff(self, failures: int) -> timedelta:
        """Delay before the next attempt after ``failures`` consecutive failures."""

        if failures <= 0:
            return timedelta(0)
        seconds = min(self._backoff_max, self._backoff_base * 2 ** (failures - 1))
        return timedelta(seconds=seconds)

    def _is_fresh(self, state: RefreshState, now: datetime) -> bool:
        return state.last_success_at is not None and now - state.last_success_at < self._ttl

    @staticmethod
    def _is_eligible(state: RefreshState, now: datetime) -> bool:
        return state.next_eligible_fetch_at is None or now >= state.next_eligible_fetch_at

    def status(self) -> str:
        """Summarise the refresh state machine for metadata displays."""

        state = self._state
        now = self._clock()
        if self._is_fresh(state, now):
            return "fresh"
        if not self._is_eligible(state, now):
            return "backing_off"
        if state.last_success_at is None and state.consecutive_failure_count == 0:
            return "never"
        return "stale"

    def ensure_fresh(self) -> OverrideSnapshot:
        """Refresh when stale and eligible, then return the current snapshot."""

        now = self._clock()
        with self._lock:
            state = self._state
            joining = self._inflight is not None

        if not joining:
            if self._is_fresh(state, now) or not self._is_eligible(state, now):
                return self._store.snapshot()

        self._attempt()
        return self._store.snapshot()

    def refresh(self, *, force: bool = False) -> RefreshState:
        """Attempt a refresh now; ``force`` ignores freshness and back-off."""

        if force:
            self._attempt()
        else:
            self.ensure_fresh()
        return self._state

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def _attempt(self) -> None:
        with self._lock:
            attempt = self._inflight
            leader = attempt is None
            busy = len(self._abandoned)
            if attempt is None and busy < _REFRESH_WORKERS:
                attempt = _Attempt(
                    self._executor.submit(self._authority.fetch_remote_overrides)
                )
                self._inflight = attempt
                self._state = replace(self._state, last_fetched_at=self._clock())

        if attempt is None:
            self._record_failure(
                RefreshTransportError(
                    f"{busy} timed-out fetches are still running"
                )
            )
            return

        if not leader:
            # Followers return once the leader has recorded the outcome.
            attempt.finished.wait(self._timeout)
            return

        try:
            self._complete(attempt.future)
        finally:
            with self._lock:
                if self._inflight is attempt:
                    self._inflight = None
            attempt.finished.set()

    def _complete(self, future: Future[RemoteFetchResult]) -> None:
        try:
            result = future.result(timeout=self._timeout)
        except FutureTimeoutError:
            self._abandon(future)
            error: Exception = RefreshTransportError(
                f"Remote refresh exceeded the {self._timeout}s timeout"
            )
        except RefreshTransportError as exc:
            error = exc
        except Exception as exc:  # noqa: BLE001
            _LOGGER.exception("Remote rate authority raised an unexpected error")
            error = RefreshTransportError(str(exc) or exc.__class__.__name__)
        else:
            self._record_success(result)
            return

        self._record_failure(error)

    def _abandon(self, future: Future[RemoteFetchResult]) -> None:
        """Stop waiting on ``future``; a late result is discarded."""

        if future.cancel():
            return

        def _release(done: Future[RemoteFetchResult]) -> None:
            with self._lock:
                self._abandoned.discard(done)
            _LOGGER.info("Discarded the late outcome of a timed-out remote refresh")

        with self._lock:
            self._abandoned.add(future)
        future.add_done_callback(_release)

    def _record_failure(self, error: Exception) -> None:
        now = self._clock()
        with self._lock:
            failures = self._state.consecutive_failure_count + 1
            self._state = replace(
                self._state,
                consecutive_failure_count=failures,
                next_eligible_fetch_at=now + self.backoff(failures),
                last_error=str(error),
            )
            next_attempt = self._state.next_eligible_fetch_at
        _LOGGER.warning(
            "Remote tax rule refresh failed (%s consecutive): %s; next attempt after %s",
            failures,
            error,
            next_attempt.isoformat() if next_attempt else None,
        )

    def _record_success(self, result: RemoteFetchResult) -> None:
        warnings: list[str] = []
        applied = 0
        snapshot = self._store.snapshot()

        for delta in result.deltas:
            try:
                path = normalise_path(delta.path)
                current = snapshot.get(path)
                if delta.version is None and (
                    self._published.get(path, _UNSET) == delta.value
                    or (current is not None and current.value == delta.value)
                ):
                    # Unchanged upstream; local edits since then stay in place.
                    self._published[path] = delta.value
                    continue
                previous = current.version if current is not None else 0
                version = self._store.apply_override(
                    path, delta.value, "remote", None, version=delta.version
                )
                self._published[path] = delta.value
                if version != previous:
                    applied += 1
            except (ValidationError, UnknownFieldError) as error:
                message = f"{delta.path}: {error}"
                warnings.append(message)
                _LOGGER.warning("Skipping remote override %s", message)

        now = self._clock()
        with self._lock:
            self._state = replace(
                self._state,
                last_success_at=now,
                consecutive_failure_count=0,
                next_eligible_fetch_at=None,
                last_error=None,
                last_warnings=tuple(warnings),
                last_source_timestamp=result.source_timestamp,
                applied_count=applied,
            )
        _LOGGER.info(
            "Remote tax rule refresh applied %s of %s override(s)",
            applied,
            len(result.deltas),
        )


__all__ = [
    "HttpRateAuthority",
    "RefreshState",
    "RemoteDelta",
    "RemoteFetchResult",
    "RemoteRateAuthority",
    "RemoteRefreshCache",
    "parse_remote_payload",
]
