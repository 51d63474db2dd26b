"""Unit tests for the ListingStore. The gateway is faked or mocked."""
import asyncio
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.application.interfaces.listing_gateway import ListingGateway
from src.application.listing_store import ListingStore, merge_listings
from src.application.queries.listing_queries import list_active
from src.domain.entities.listing import Listing, ListingDraft
from src.domain.errors import NotFoundError, StorageError, ValidationError

_T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class InMemoryGateway(ListingGateway):
    """Shared medium that records every commit; yields to the loop while saving."""

    def __init__(self, listings: Sequence[Listing] = ()) -> None:
        self.saved: list[tuple[Listing, ...]] = []
        self.stored: tuple[Listing, ...] = tuple(listings)

    async def load(self) -> list[Listing]:
        return list(self.stored)

    async def save(self, listings: Sequence[Listing]) -> list[Listing]:
        await asyncio.sleep(0)
        self.saved.append(tuple(listings))
        self.stored = merge_listings(self.stored, listings)
        return list(self.stored)


def _make_gateway(listings: list[Listing] | None = None) -> MagicMock:
    gateway = MagicMock()
    gateway.load = AsyncMock(return_value=listings or [])
    gateway.save = AsyncMock(side_effect=lambda listings: list(listings))
    return gateway


def _clock(*moments: datetime):  # type: ignore[no-untyped-def]
    it = iter(moments)
    return lambda: next(it)


def _draft(**overrides) -> ListingDraft:  # type: ignore[no-untyped-def]
    defaults = dict(title="Mesa", description="Mesa de madeira", price="150.00", seller="Ana")
    defaults.update(overrides)
    return ListingDraft(**defaults)


class TestOpen:
    @pytest.mark.asyncio
    async def test_loads_collection_once(self) -> None:
        existing = Listing(id="x", title="t", description="d", price=0, seller="s", created_at=_T0)  # type: ignore[arg-type]
        gateway = _make_gateway([existing])
        store = await ListingStore.open(gateway)
        assert store.snapshot() == (existing,)
        assert len(store) == 1
        gateway.load.assert_awaited_once()


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_then_get(self) -> None:
        gateway = _make_gateway()
        store = await ListingStore.open(gateway)

        listing = await store.create(_draft(title=" Mesa ", category="moveis"))

        assert store.get(listing.id) == listing
        assert listing.title == "Mesa"
        assert listing.category == "moveis"
        assert listing.active is True
        gateway.save.assert_awaited_once()
        assert list(gateway.save.await_args.args[0]) == [listing]

    @pytest.mark.asyncio
    async def test_validation_error_commits_nothing(self) -> None:
        gateway = _make_gateway()
        store = await ListingStore.open(gateway)

        with pytest.raises(ValidationError):
            await store.create(_draft(seller=""))

        gateway.save.assert_not_awaited()
        assert store.snapshot() == ()

    @pytest.mark.asyncio
    async def test_commit_failure_leaves_store_unchanged(self) -> None:
        gateway = _make_gateway()
        gateway.save = AsyncMock(side_effect=StorageError())
        store = await ListingStore.open(gateway)

        with pytest.raises(StorageError):
            await store.create(_draft())

        assert store.snapshot() == ()
        assert list_active(store.snapshot()) == []

    @pytest.mark.asyncio
    async def test_ids_are_unique(self) -> None:
        existing = Listing(id="dup", title="t", description="d", price=0, seller="s", created_at=_T0)  # type: ignore[arg-type]
        ids = iter(["dup", "dup", "fresh"])
        store = ListingStore(_make_gateway(), (existing,), id_factory=lambda: next(ids))

        listing = await store.create(_draft())

        assert listing.id == "fresh"

    @pytest.mark.asyncio
    async def test_newest_first_ordering(self) -> None:
        t1, t2, t3 = _T0, _T0 + timedelta(seconds=1), _T0 + timedelta(seconds=2)
        store = ListingStore(_make_gateway(), clock=_clock(t1, t2, t3))

        first = await store.create(_draft(title="t1"))
        second = await store.create(_draft(title="t2"))
        third = await store.create(_draft(title="t3"))

        assert list_active(store.snapshot()) == [third, second, first]

    @pytest.mark.asyncio
    async def test_created_at_never_goes_backwards(self) -> None:
        store = ListingStore(_make_gateway(), clock=_clock(_T0, _T0 - timedelta(hours=1)))

        first = await store.create(_draft())
        second = await store.create(_draft())

        assert second.created_at == first.created_at

    @pytest.mark.asyncio
    async def test_concurrent_creates_are_all_kept(self) -> None:
        gateway = InMemoryGateway()
        store = await ListingStore.open(gateway)

        created = await asyncio.gather(*(store.create(_draft(title=f"item {i}")) for i in range(20)))

        ids = {listing.id for listing in created}
        assert len(ids) == 20
        assert {listing.id for listing in store.snapshot()} == ids
        # every commit extended the previous one; nothing was overwritten
        assert [len(saved) for saved in gateway.saved] == list(range(1, 21))
        assert set(gateway.saved[-1]) == set(created)


class TestRetire:
    @pytest.mark.asyncio
    async def test_retire_hides_listing(self) -> None:
        store = ListingStore(_make_gateway())
        listing = await store.create(_draft())

        sold = await store.retire(listing.id)

        assert sold.active is False
        assert sold.sold_at is not None
        with pytest.raises(NotFoundError):
            store.get(listing.id)
        assert listing.id not in [l.id for l in list_active(store.snapshot())]
        # still part of the collection
        assert store.snapshot() == (sold,)

    @pytest.mark.asyncio
    async def test_second_retire_is_not_found(self) -> None:
        store = ListingStore(_make_gateway())
        listing = await store.create(_draft())

        await store.retire(listing.id)
        with pytest.raises(NotFoundError):
            await store.retire(listing.id)

    @pytest.mark.asyncio
    async def test_unknown_id_is_not_found(self) -> None:
        gateway = _make_gateway()
        store = ListingStore(gateway)
        with pytest.raises(NotFoundError):
            await store.retire("missing")
        gateway.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back(self) -> None:
        gateway = _make_gateway()
        store = ListingStore(gateway)
        listing = await store.create(_draft())
        gateway.save.side_effect = StorageError()

        with pytest.raises(StorageError):
            await store.retire(listing.id)

        assert store.get(listing.id).active is True
        assert store.get(listing.id).sold_at is None

    @pytest.mark.asyncio
    async def test_retire_keeps_position_in_collection(self) -> None:
        store = ListingStore(_make_gateway())
        a = await store.create(_draft(title="a"))
        b = await store.create(_draft(title="b"))
        c = await store.create(_draft(title="c"))

        await store.retire(b.id)

        assert [l.id for l in store.snapshot()] == [a.id, b.id, c.id]


class TestSnapshot:
    @pytest.mark.asyncio
    async def test_snapshot_is_isolated_from_later_mutations(self) -> None:
        store = ListingStore(_make_gateway())
        listing = await store.create(_draft())
        before = store.snapshot()

        await store.retire(listing.id)
        await store.create(_draft(title="other"))

        assert before == (listing,)
        assert before[0].active is True


class TestSharedMedium:
    @pytest.mark.asyncio
    async def test_two_stores_on_one_medium_keep_both_listings(self) -> None:
        gateway = InMemoryGateway()
        first = await ListingStore.open(gateway)
        second = await ListingStore.open(gateway)

        from_first = await first.create(_draft(title="from-first"))
        from_second = await second.create(_draft(title="from-second"))

        assert [l.id for l in gateway.stored] == [from_first.id, from_second.id]
        assert second.get(from_first.id) == from_first

    @pytest.mark.asyncio
    async def test_created_at_follows_listings_written_elsewhere(self) -> None:
        gateway = InMemoryGateway()
        later = _T0 + timedelta(hours=1)
        first = await ListingStore.open(gateway, clock=_clock(later))
        second = await ListingStore.open(gateway, clock=_clock(_T0))

        newer = await first.create(_draft())
        created = await second.create(_draft())

        assert created.created_at == newer.created_at

    @pytest.mark.asyncio
    async def test_listing_sold_elsewhere_is_not_found(self) -> None:
        gateway = InMemoryGateway()
        first = await ListingStore.open(gateway)
        listing = await first.create(_draft())
        second = await ListingStore.open(gateway)

        await first.retire(listing.id)

        with pytest.raises(NotFoundError):
            await second.retire(listing.id)
        assert gateway.stored[0].sold_at == first.snapshot()[0].sold_at

    @pytest.mark.asyncio
    async def test_sale_committed_concurrently_elsewhere_is_not_found(self) -> None:
        listing = Listing(id="x", title="t", description="d", price=0, seller="s", created_at=_T0)  # type: ignore[arg-type]
        sold_elsewhere = listing.mark_sold(_T0 + timedelta(minutes=1))
        gateway = _make_gateway([listing])
        gateway.save = AsyncMock(return_value=[sold_elsewhere])
        store = await ListingStore.open(gateway, clock=_clock(_T0 + timedelta(minutes=2)))

        with pytest.raises(NotFoundError):
            await store.retire("x")

        assert store.snapshot() == (sold_elsewhere,)


class TestMergeListings:
    def test_appends_unknown_ids_in_order(self) -> None:
        a = Listing(id="a", title="t", description="d", price=0, seller="s", created_at=_T0)  # type: ignore[arg-type]
        b = Listing(id="b", title="t", description="d", price=0, seller="s", created_at=_T0)  # type: ignore[arg-type]
        assert merge_listings([a], [b, a]) == (a, b)

    def test_sold_version_wins_either_way(self) -> None:
        active = Listing(id="a", title="t", description="d", price=0, seller="s", created_at=_T0)  # type: ignore[arg-type]
        sold = active.mark_sold(_T0 + timedelta(days=1))
        assert merge_listings([active], [sold]) == (sold,)
        assert merge_listings([sold], [active]) == (sold,)
