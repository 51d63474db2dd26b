"""Tests for the SQLAlchemy gateway against a throwaway SQLite database."""
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from src.application.listing_store import ListingStore
from src.domain.entities.listing import Listing, ListingDraft
from src.domain.errors import StorageError
from src.infrastructure.database.connection import create_engine, create_session_factory, init_models
from src.infrastructure.database.listing_gateway import SqlAlchemyListingGateway

_T0 = datetime(2024, 3, 10, 14, 30, 15, 123456, tzinfo=timezone.utc)


@pytest_asyncio.fixture()
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


def _listing(listing_id: str, minutes: int = 0, **overrides) -> Listing:  # type: ignore[no-untyped-def]
    defaults = dict(
        id=listing_id,
        title="Mesa",
        description="Mesa de madeira",
        price=Decimal("150.00"),
        seller="Ana",
        images=("/uploads/1-1.jpg",),
        created_at=_T0 + timedelta(minutes=minutes),
    )
    defaults.update(overrides)
    return Listing(**defaults)


class TestSqlAlchemyListingGateway:
    @pytest.mark.asyncio
    async def test_empty_table_loads_nothing(self, engine: AsyncEngine) -> None:
        gateway = SqlAlchemyListingGateway(create_session_factory(engine))
        assert await gateway.load() == []

    @pytest.mark.asyncio
    async def test_round_trip_preserves_order_and_fields(self, engine: AsyncEngine) -> None:
        gateway = SqlAlchemyListingGateway(create_session_factory(engine))
        listings = [
            _listing("b", 5, category="moveis", contact="119"),
            _listing("a", 1, price=Decimal("0.00"), images=()),
            _listing("c", 3).mark_sold(_T0 + timedelta(days=1)),
        ]

        await gateway.save(listings)

        assert await gateway.load() == listings

    @pytest.mark.asyncio
    async def test_save_updates_existing_rows(self, engine: AsyncEngine) -> None:
        gateway = SqlAlchemyListingGateway(create_session_factory(engine))
        listing = _listing("a")
        await gateway.save([listing])

        sold = listing.mark_sold(_T0 + timedelta(hours=2))
        await gateway.save([sold])

        loaded = await gateway.load()
        assert loaded == [sold]
        assert loaded[0].sold_at == _T0 + timedelta(hours=2)

    @pytest.mark.asyncio
    async def test_round_trip_keeps_large_prices_exact(self, engine: AsyncEngine) -> None:
        gateway = SqlAlchemyListingGateway(create_session_factory(engine))
        listings = [
            _listing("big", price=Decimal("12345678901234567.89")),
            _listing("huge", 1, price=Decimal("99999999999999999999999999.99")),
        ]

        await gateway.save(listings)

        loaded = await gateway.load()
        assert [l.price for l in loaded] == [Decimal("12345678901234567.89"), Decimal("99999999999999999999999999.99")]
        assert loaded == listings

    @pytest.mark.asyncio
    async def test_save_keeps_rows_it_was_not_given(self, engine: AsyncEngine) -> None:
        gateway = SqlAlchemyListingGateway(create_session_factory(engine))
        a, b = _listing("a"), _listing("b", 1)
        await gateway.save([a])

        stored = await gateway.save([b])

        assert stored == [a, b]
        assert await gateway.load() == [a, b]

    @pytest.mark.asyncio
    async def test_sold_row_is_never_reactivated(self, engine: AsyncEngine) -> None:
        gateway = SqlAlchemyListingGateway(create_session_factory(engine))
        listing = _listing("a")
        sold = listing.mark_sold(_T0 + timedelta(hours=1))
        await gateway.save([sold])

        assert await gateway.save([listing]) == [sold]
        assert await gateway.load() == [sold]

    @pytest.mark.asyncio
    async def test_missing_table_loads_nothing(self, tmp_path: Path) -> None:
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        try:
            gateway = SqlAlchemyListingGateway(create_session_factory(engine))
            assert await gateway.load() == []
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_write_failure_raises_storage_error(self, tmp_path: Path) -> None:
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'no-tables.db'}")
        try:
            gateway = SqlAlchemyListingGateway(create_session_factory(engine))
            with pytest.raises(StorageError):
                await gateway.save([_listing("a")])
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_store_survives_restart(self, engine: AsyncEngine) -> None:
        sessions = create_session_factory(engine)
        store = await ListingStore.open(SqlAlchemyListingGateway(sessions))
        kept = await store.create(ListingDraft(title="Mesa", description="d", price="10", seller="Ana"))
        sold = await store.create(ListingDraft(title="Sofá", description="d", price="99,90", seller="Bia"))
        await store.retire(sold.id)

        reopened = await ListingStore.open(SqlAlchemyListingGateway(sessions))

        assert reopened.snapshot() == store.snapshot()
        assert reopened.get(kept.id) == kept

    @pytest.mark.asyncio
    async def test_two_stores_on_one_database_keep_each_others_listings(self, engine: AsyncEngine) -> None:
        sessions = create_session_factory(engine)
        first = await ListingStore.open(SqlAlchemyListingGateway(sessions))
        second = await ListingStore.open(SqlAlchemyListingGateway(sessions))

        a = await first.create(ListingDraft(title="from-first", description="d", price="1", seller="Ana"))
        b = await second.create(ListingDraft(title="from-second", description="d", price="2", seller="Bia"))

        assert [l.id for l in await SqlAlchemyListingGateway(sessions).load()] == [a.id, b.id]
