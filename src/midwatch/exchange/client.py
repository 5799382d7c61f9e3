"""Abstract price source interface.

Defines the contract for upstream price oracles. Workers depend only on
this interface, keeping Hyperliquid/ccxt details isolated in the concrete
implementation.
"""

from abc import ABC, abstractmethod
from decimal import Decimal


class PriceSource(ABC):
    """Abstract base class for upstream mid-price sources."""

    @abstractmethod
    async def get_price(self, symbol: str) -> Decimal:
        """Fetch the current mid price for a single symbol.

        Raises:
            PriceSourceError: On transport, status or parse failure.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release HTTP resources."""
        ...
