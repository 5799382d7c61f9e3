"""Tests for PriceQueryService windowed reads."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from midwatch.data.query import DEFAULT_WINDOW, PriceQueryService
from midwatch.data.store import ObservationStore
from midwatch.exceptions import InvalidQueryError, StoreError


@pytest.fixture
def service(store: ObservationStore, clock) -> PriceQueryService:
    return PriceQueryService(store, clock=clock)


class TestQueryWindow:
    @pytest.mark.asyncio
    async def test_default_window_is_24h(self, service: PriceQueryService) -> None:
        assert service.window == DEFAULT_WINDOW == timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_only_rows_inside_window(
        self, service: PriceQueryService, store: ObservationStore, clock
    ) -> None:
        await store.insert_observation("ETH", Decimal("3000"), created_at=clock.now - timedelta(hours=1))
        await store.insert_observation("ETH", Decimal("2900"), created_at=clock.now - timedelta(hours=25))

        result = await service.query("ETH")

        assert result.count == 1
        assert len(result.observations) == 1
        assert result.observations[0].price == Decimal("3000")
        assert result.observations[0].created_at == clock.now - timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_ordered_newest_first(
        self, service: PriceQueryService, store: ObservationStore, clock
    ) -> None:
        for hours in (5, 1, 3):
            await store.insert_observation(
                "BTC", Decimal(hours), created_at=clock.now - timedelta(hours=hours)
            )

        result = await service.query("BTC")

        assert [o.price for o in result.observations] == [Decimal(1), Decimal(3), Decimal(5)]
        assert result.count == 3

    @pytest.mark.asyncio
    async def test_custom_window(
        self, service: PriceQueryService, store: ObservationStore, clock
    ) -> None:
        await store.insert_observation("BTC", Decimal("1"), created_at=clock.now - timedelta(hours=2))
        result = await service.query("BTC", window=timedelta(hours=1))
        assert result.count == 0

    @pytest.mark.asyncio
    async def test_zero_window_is_not_replaced_by_default(
        self, service: PriceQueryService, store: ObservationStore, clock
    ) -> None:
        await store.insert_observation("BTC", Decimal("1"))
        await store.insert_observation("BTC", Decimal("2"), created_at=clock.now - timedelta(seconds=1))

        result = await service.query("BTC", window=timedelta(0))

        assert [o.price for o in result.observations] == [Decimal("1")]
        assert result.count == 1

    @pytest.mark.asyncio
    async def test_window_follows_clock(
        self, service: PriceQueryService, store: ObservationStore, clock
    ) -> None:
        await store.insert_observation("BTC", Decimal("1"))
        clock.advance(hours=25)
        result = await service.query("BTC")
        assert result.count == 0

    @pytest.mark.asyncio
    async def test_unknown_symbol_is_empty_not_error(self, service: PriceQueryService) -> None:
        result = await service.query("DOGE")
        assert result.symbol == "DOGE"
        assert result.observations == []
        assert result.count == 0

    @pytest.mark.asyncio
    async def test_soft_deleted_rows_excluded(
        self, service: PriceQueryService, store: ObservationStore, clock
    ) -> None:
        await store.insert_observation("ETH", Decimal("1"), created_at=clock.now - timedelta(hours=2))
        await store.soft_delete_before(clock.now - timedelta(hours=1))
        await store.insert_observation("ETH", Decimal("2"))

        result = await service.query("ETH")

        assert [o.price for o in result.observations] == [Decimal("2")]
        assert result.count == 1


class TestQueryValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("symbol", ["", "   ", None])
    async def test_missing_symbol_rejected_before_store(self, symbol) -> None:
        store = AsyncMock(spec=ObservationStore)
        service = PriceQueryService(store)

        with pytest.raises(InvalidQueryError, match="required"):
            await service.query(symbol)

        store.count_since.assert_not_awaited()
        store.get_since.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_error_propagates_with_stage(self) -> None:
        store = AsyncMock(spec=ObservationStore)
        store.count_since.side_effect = StoreError("disk I/O error", stage="count")
        service = PriceQueryService(store)

        with pytest.raises(StoreError) as exc_info:
            await service.query("BTC")

        assert exc_info.value.stage == "count"
        store.get_since.assert_not_awaited()
