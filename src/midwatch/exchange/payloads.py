"""Shape-tolerant extraction of a single mid price from an allMids payload.

Hyperliquid returns ``{"BTC": "65000.1", ...}`` from the REST endpoint, but
the same data shows up wrapped (``{"data": {"mids": {...}}}``, as on the
websocket channel) or as per-asset records carrying ``midPx``. Each shape is
handled by an independent strategy; strategies run in priority order and the
first one that finds the requested symbol wins.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from midwatch.exceptions import PriceParseError, SymbolNotFoundError

_MISSING = object()
_PREVIEW_CHARS = 500


@dataclass(frozen=True)
class PriceMatch:
    """A raw (unparsed) price value located in a payload."""

    shape: str
    key: str
    raw: Any


Strategy = Callable[[Any, str], PriceMatch | None]


def _as_string_map(value: Any) -> dict[str, str] | None:
    """Return ``value`` if it is a non-empty mapping of str -> str."""
    if not isinstance(value, dict) or not value:
        return None
    if not all(isinstance(v, str) for v in value.values()):
        return None
    return value


def _as_record_map(value: Any) -> dict[str, dict] | None:
    """Return ``value`` if it is a non-empty mapping of str -> dict."""
    if not isinstance(value, dict) or not value:
        return None
    if not all(isinstance(v, dict) for v in value.values()):
        return None
    return value


def _lookup(mapping: dict[str, Any], symbol: str) -> tuple[str, Any]:
    """Find ``symbol`` by exact key, then by case-insensitive scan.

    Returns (matched_key, value) or (symbol, _MISSING).
    """
    if symbol in mapping:
        return symbol, mapping[symbol]
    wanted = symbol.upper()
    for key, value in mapping.items():
        if isinstance(key, str) and key.upper() == wanted:
            return key, value
    return symbol, _MISSING


def _match_in(mapping: dict[str, Any] | None, symbol: str, shape: str) -> PriceMatch | None:
    if mapping is None:
        return None
    key, value = _lookup(mapping, symbol)
    if value is _MISSING:
        return None
    return PriceMatch(shape=shape, key=key, raw=value)


def _wrapped_mids(payload: Any) -> dict[str, str] | None:
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        return None
    data = payload["data"]
    return _as_string_map(data.get("mids")) or _as_string_map(data)


def _mid_px_records(payload: Any) -> dict[str, dict] | None:
    if not isinstance(payload, dict):
        return None
    return _as_record_map(payload.get("data"))


# ──────────────────────────────────────────────
# Strategies, in priority order
# ──────────────────────────────────────────────


def flat_mids(payload: Any, symbol: str) -> PriceMatch | None:
    """``{"BTC": "65000.1", "ETH": "3000.2"}``"""
    return _match_in(_as_string_map(payload), symbol, "flat")


def wrapped_mids(payload: Any, symbol: str) -> PriceMatch | None:
    """``{"data": {"mids": {"BTC": "65000.1"}}}`` or ``{"data": {"BTC": "65000.1"}}``"""
    return _match_in(_wrapped_mids(payload), symbol, "wrapped")


def top_level_mids(payload: Any, symbol: str) -> PriceMatch | None:
    """``{"mids": {"BTC": "65000.1"}, ...}``"""
    if not isinstance(payload, dict):
        return None
    return _match_in(_as_string_map(payload.get("mids")), symbol, "mids")


def perp_info_mid_px(payload: Any, symbol: str) -> PriceMatch | None:
    """``{"meta": {...}, "data": {"BTC": {"midPx": "65000.1", ...}}}``"""
    match = _match_in(_mid_px_records(payload), symbol, "perp_info")
    if match is None:
        return None
    return PriceMatch(shape=match.shape, key=match.key, raw=match.raw.get("midPx"))


PARSE_STRATEGIES: tuple[Strategy, ...] = (
    flat_mids,
    wrapped_mids,
    top_level_mids,
    perp_info_mid_px,
)


# ──────────────────────────────────────────────
# Public helpers
# ──────────────────────────────────────────────


def decode_payload(payload: Any) -> Any:
    """Decode a bytes/str payload as JSON; other values pass through.

    Undecodable text is returned unchanged so the not-found diagnostic can
    show a preview of it.
    """
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            return json.loads(payload)
        except ValueError:
            return payload
    return payload


def parse_price(raw: Any, symbol: str) -> Decimal:
    """Parse a raw price value into a finite Decimal.

    Raises:
        PriceParseError: If the value is missing, not numeric, or not finite.
    """
    if raw is None or isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise PriceParseError(
            f"failed to parse price for {symbol}: unexpected value {raw!r}",
            symbol=symbol,
        )
    try:
        price = Decimal(str(raw).strip())
    except InvalidOperation as exc:
        raise PriceParseError(
            f"failed to parse price for {symbol}: {raw!r}", symbol=symbol
        ) from exc
    if not price.is_finite():
        raise PriceParseError(
            f"failed to parse price for {symbol}: non-finite value {raw!r}",
            symbol=symbol,
        )
    return price


def available_symbols(payload: Any) -> list[str]:
    """List every symbol-like key visible in any recognised shape.

    Falls back to the payload's top-level keys when no shape is recognised.
    """
    found: set[str] = set()
    if isinstance(payload, dict):
        wrapped = _wrapped_mids(payload)
        for mapping in (
            _as_string_map(payload),
            wrapped,
            _as_string_map(payload.get("mids")),
            # {"data": {"mids": {...}}} also looks like a record map keyed "mids"
            None if wrapped else _mid_px_records(payload),
        ):
            if mapping:
                found.update(mapping)
        if not found:
            found.update(str(k) for k in payload)
    return sorted(found)


def find_price(payload: Any, symbol: str) -> PriceMatch:
    """Run every strategy in order and return the first match.

    Raises:
        SymbolNotFoundError: If no strategy locates ``symbol``.
    """
    for strategy in PARSE_STRATEGIES:
        match = strategy(payload, symbol)
        if match is not None:
            return match

    if isinstance(payload, dict):
        symbols = available_symbols(payload)
        raise SymbolNotFoundError(
            f"coin {symbol} not found in response. "
            f"Available coins in response: {symbols}",
            symbol=symbol,
            available_symbols=symbols,
        )
    preview = payload if isinstance(payload, str) else json.dumps(payload, default=str)
    raise SymbolNotFoundError(
        f"coin {symbol} not found. Response (first {_PREVIEW_CHARS} chars): "
        f"{preview[:_PREVIEW_CHARS]}",
        symbol=symbol,
    )


def extract_price(payload: Any, symbol: str) -> Decimal:
    """Locate and parse the mid price for ``symbol`` in an allMids payload."""
    match = find_price(decode_payload(payload), symbol)
    return parse_price(match.raw, symbol)
