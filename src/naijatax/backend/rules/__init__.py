"""Override store, remote refresh and merge logic for Nigerian tax rates."""

from .engine import TaxRuleEngine, build_engine
from .errors import (
    ConfigIntegrityError,
    RefreshTransportError,
    TaxRuleError,
    UnknownFieldError,
    ValidationError,
)
from .merge import EffectiveConfig, merge
from .models import OverrideEntry, OverrideSnapshot
from .remote import (
    HttpRateAuthority,
    RefreshState,
    RemoteDelta,
    RemoteFetchResult,
    RemoteRateAuthority,
    RemoteRefreshCache,
)
from .settings import EngineSettings
from .store import OverrideStore

__all__ = [
    "ConfigIntegrityError",
    "EffectiveConfig",
    "EngineSettings",
    "HttpRateAuthority",
    "OverrideEntry",
    "OverrideSnapshot",
    "OverrideStore",
    "RefreshState",
    "RefreshTransportError",
    "RemoteDelta",
    "RemoteFetchResult",
    "RemoteRateAuthority",
    "RemoteRefreshCache",
    "TaxRuleEngine",
    "TaxRuleError",
    "UnknownFieldError",
    "ValidationError",
    "build_engine",
    "merge",
]
