"""Shared data models for the mid-price tracker.

CRITICAL: All prices use Decimal. Never use float for prices until the
JSON boundary.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds (naive means UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _ONE_MS


def from_epoch_ms(value: int) -> datetime:
    """Convert integer epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=value)


@dataclass(frozen=True)
class Observation:
    """A single persisted mid-price observation.

    Immutable once written; the only later change is soft-deletion via
    ``deleted_at``, which hides the row from every normal read.
    """

    symbol: str
    price: Decimal
    created_at: datetime
    updated_at: datetime
    id: int | None = None
    deleted_at: datetime | None = None


@dataclass
class PriceWindow:
    """Observations for one symbol within a trailing time window, newest first."""

    symbol: str
    observations: list[Observation] = field(default_factory=list)
    count: int = 0


@dataclass
class FetchReport:
    """Outcome of one pass over the tracked symbols."""

    saved: dict[str, Decimal] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed
