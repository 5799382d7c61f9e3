"""Price source layer -- Hyperliquid allMids integration via ccxt."""

from midwatch.exchange.client import PriceSource
from midwatch.exchange.hyperliquid_client import HyperliquidClient
from midwatch.exchange.payloads import PARSE_STRATEGIES, extract_price

__all__ = ["HyperliquidClient", "PARSE_STRATEGIES", "PriceSource", "extract_price"]
