"""Error taxonomy for the tax rule override engine."""

from __future__ import annotations


class TaxRuleError(Exception):
    """Base class for rule engine failures."""


class ValidationError(TaxRuleError, ValueError):
    """Raised when an override or calculation input is malformed or out of range."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class UnknownFieldError(TaxRuleError, ValueError):
    """Raised when an override path does not resolve to a rate table field."""

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(field)
        self.field = field
        self.message = message or f"Unknown rate table field '{field}'"

    def __str__(self) -> str:
        return self.message


class RefreshTransportError(TaxRuleError):
    """Raised when the remote rate authority cannot be reached or parsed."""


class ConfigIntegrityError(TaxRuleError):
    """Raised when a merged configuration would violate a structural invariant."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


__all__ = [
    "ConfigIntegrityError",
    "RefreshTransportError",
    "TaxRuleError",
    "UnknownFieldError",
    "ValidationError",
]
