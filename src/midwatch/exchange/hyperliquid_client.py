"""Hyperliquid mid-price client implementation via ccxt async.

Uses the raw ``POST /info`` endpoint exposed by ccxt's hyperliquid class
rather than its unified market methods: a single ``allMids`` request
returns every listed coin, and the payload is parsed with the strategies in
``midwatch.exchange.payloads``.
"""

from decimal import Decimal
from typing import Any

import ccxt.async_support as ccxt_async
from ccxt.base.errors import BaseError

from midwatch.config import HYPERLIQUID_API_URL, FetchSettings
from midwatch.exceptions import PriceSourceUnavailable
from midwatch.exchange.client import PriceSource
from midwatch.exchange.payloads import decode_payload, find_price, parse_price
from midwatch.logging import get_logger

logger = get_logger(__name__)

ALL_MIDS_REQUEST = {"type": "allMids"}
_ERROR_BODY_LIMIT = 500


class HyperliquidClient(PriceSource):
    """Concrete Hyperliquid price source using ccxt async."""

    def __init__(self, settings: FetchSettings) -> None:
        self._settings = settings

        config: dict = {
            "enableRateLimit": True,
            # ccxt timeouts are milliseconds and cover the whole request
            "timeout": int(settings.request_timeout * 1000),
        }

        if settings.api_url.rstrip("/") != HYPERLIQUID_API_URL:
            base_url = settings.api_url.rstrip("/")
            config["urls"] = {
                "api": {
                    "public": base_url,
                    "private": base_url,
                },
            }

        self._exchange = ccxt_async.hyperliquid(config)

    @property
    def exchange(self) -> ccxt_async.hyperliquid:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def fetch_all_mids(self) -> Any:
        """Issue one allMids request and return the decoded payload.

        Raises:
            PriceSourceUnavailable: On transport error, timeout or non-2xx
                status. The message keeps ccxt's status code and body,
                truncated for logging.
        """
        try:
            return await self._exchange.public_post_info(dict(ALL_MIDS_REQUEST))
        except BaseError as exc:
            detail = str(exc)[:_ERROR_BODY_LIMIT]
            raise PriceSourceUnavailable(
                f"allMids request failed ({type(exc).__name__}): {detail}"
            ) from exc

    async def get_price(self, symbol: str) -> Decimal:
        """Fetch all mids and extract the price for ``symbol``."""
        payload = decode_payload(await self.fetch_all_mids())
        match = find_price(payload, symbol)
        price = parse_price(match.raw, symbol)
        logger.debug(
            "mid_price_fetched",
            symbol=symbol,
            price=str(price),
            shape=match.shape,
            key=match.key,
        )
        return price

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_hyperliquid_connection")
        await self._exchange.close()
        logger.info("hyperliquid_connection_closed")
