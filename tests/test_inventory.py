"""Tests for app.services.inventory (store primitives)."""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import InfrastructureError
from app.services import inventory


class TestDecrementStock:
    @pytest.mark.asyncio
    async def test_decrements_when_enough_stock(self, db_session, seeded, read_stock):
        variant = await inventory.decrement_stock(db_session, 101, 2)
        assert variant is not None
        assert variant.stock == 3
        assert await read_stock(101) == 3

    @pytest.mark.asyncio
    async def test_exact_stock_goes_to_zero(self, db_session, seeded, read_stock):
        variant = await inventory.decrement_stock(db_session, 102, 3)
        assert variant is not None and variant.stock == 0
        assert await read_stock(102) == 0

    @pytest.mark.asyncio
    async def test_insufficient_stock_is_no_match(self, db_session, seeded, read_stock):
        assert await inventory.decrement_stock(db_session, 201, 2) is None
        assert await read_stock(201) == 1

    @pytest.mark.asyncio
    async def test_unknown_variant_is_no_match(self, db_session, seeded):
        assert await inventory.decrement_stock(db_session, 999, 1) is None

    @pytest.mark.asyncio
    async def test_non_positive_quantity_rejected(self, db_session, seeded):
        with pytest.raises(ValueError):
            await inventory.decrement_stock(db_session, 101, 0)

    @pytest.mark.asyncio
    async def test_concurrent_decrements_never_oversell(self, session_factory, seeded, read_stock):
        async def buy_one() -> bool:
            async with session_factory() as s:
                return await inventory.decrement_stock(s, 101, 1) is not None

        results = await asyncio.gather(*(buy_one() for _ in range(8)))
        assert sum(results) == 5
        assert await read_stock(101) == 0


class TestReads:
    @pytest.mark.asyncio
    async def test_find_product_by_variant(self, db_session, seeded):
        product = await inventory.find_product_by_variant(db_session, 102)
        assert product is not None
        assert product.name == "Remera"
        assert [v.id for v in product.variants] == [101, 102]

    @pytest.mark.asyncio
    async def test_find_product_by_unknown_variant(self, db_session, seeded):
        assert await inventory.find_product_by_variant(db_session, 999) is None

    @pytest.mark.asyncio
    async def test_reads_are_fresh_not_session_cached(self, session_factory, seeded):
        async with session_factory() as reader, session_factory() as writer:
            before = await inventory.get_variant(reader, 101)
            assert before.stock == 5
            await inventory.decrement_stock(writer, 101, 4)
            after = await inventory.get_variant(reader, 101)
            assert after.stock == 1

    @pytest.mark.asyncio
    async def test_update_variant(self, db_session, seeded, read_stock):
        variant = await inventory.update_variant(db_session, 201, stock=40)
        assert variant is not None and variant.stock == 40
        assert await read_stock(201) == 40

        repriced = await inventory.update_variant(db_session, 201, price=Decimal("750.25"))
        assert repriced.price == Decimal("750.25")
        assert repriced.stock == 40
        assert await inventory.update_variant(db_session, 999, stock=1) is None


class TestBounded:
    @pytest.mark.asyncio
    async def test_timeout_maps_to_infrastructure_error(self, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "STORE_TIMEOUT_SECONDS", 0.01)
        with pytest.raises(InfrastructureError):
            await inventory.bounded(asyncio.sleep(1), op="slow")

    @pytest.mark.asyncio
    async def test_driver_error_maps_to_infrastructure_error(self, test_settings):
        async def broken():
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        with pytest.raises(InfrastructureError) as exc_info:
            await inventory.bounded(broken(), op="broken")
        assert exc_info.value.http_status == 500
        assert "locked" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_passes_result_through(self, test_settings):
        async def ok():
            return 42

        assert await inventory.bounded(ok(), op="ok") == 42
