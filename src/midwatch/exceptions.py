"""Custom exceptions for the mid-price tracker.

Adapter, store and query exceptions live here so workers and the HTTP
layer can catch them without importing each other.
"""


class MidwatchError(Exception):
    """Base exception for all midwatch errors."""


class PriceSourceError(MidwatchError):
    """Raised when the upstream price source cannot produce a price."""

    def __init__(self, message: str, symbol: str | None = None) -> None:
        super().__init__(message)
        self.symbol = symbol


class PriceSourceUnavailable(PriceSourceError):
    """Raised on transport failure or a non-success upstream status."""


class PriceParseError(PriceSourceError):
    """Raised when a price or the response payload cannot be parsed."""


class SymbolNotFoundError(PriceParseError):
    """Raised when the requested symbol is absent from every payload shape."""

    def __init__(
        self,
        message: str,
        symbol: str | None = None,
        available_symbols: list[str] | None = None,
    ) -> None:
        super().__init__(message, symbol=symbol)
        self.available_symbols = available_symbols or []


class StoreError(MidwatchError):
    """Raised when an observation store operation fails.

    ``stage`` names the operation that failed (e.g. "insert", "count").
    """

    def __init__(self, message: str, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


class InvalidQueryError(MidwatchError):
    """Raised when a read request is missing required input."""
