import asyncio
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from uuid import uuid4

import structlog

from src.application.interfaces.listing_gateway import ListingGateway
from src.application.queries.listing_queries import find_active
from src.domain.entities.listing import Listing, ListingDraft
from src.domain.errors import NotFoundError, StorageError

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


def merge_listings(current: Iterable[Listing], incoming: Iterable[Listing]) -> tuple[Listing, ...]:
    """
    Union of two collections by id, in `current` order with new ids appended.

    When both sides hold the same id the sold version wins, since a sale is
    the only change a listing ever goes through.
    """
    merged = {listing.id: listing for listing in current}
    for listing in incoming:
        known = merged.get(listing.id)
        if known is None or (known.active and not listing.active):
            merged[listing.id] = listing
    return tuple(merged.values())


class ListingStore:
    """
    Owns the canonical listing collection and every change made to it.

    The collection is an immutable tuple. A mutation builds the next tuple,
    commits it through the gateway and only then publishes what the gateway
    stored, so readers always see a fully committed state and a failed commit
    leaves nothing to roll back. Mutations are serialized by one lock per
    store and start from a fresh read of the medium, which other processes
    may be writing too.
    """

    def __init__(
        self,
        gateway: ListingGateway,
        listings: tuple[Listing, ...] = (),
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._gateway = gateway
        self._listings = tuple(listings)
        self._clock = clock
        self._id_factory = id_factory
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, gateway: ListingGateway, **kwargs) -> "ListingStore":  # type: ignore[no-untyped-def]
        listings = await gateway.load()
        logger.info("listing_store_opened", listings=len(listings))
        return cls(gateway, tuple(listings), **kwargs)

    def __len__(self) -> int:
        return len(self._listings)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def snapshot(self) -> tuple[Listing, ...]:
        """Point-in-time view of every listing, sold ones included."""
        return self._listings

    def get(self, listing_id: str) -> Listing:
        listing = find_active(self._listings, listing_id)
        if listing is None:
            raise NotFoundError(listing_id)
        return listing

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(self, draft: ListingDraft) -> Listing:
        """Validate a draft, commit it and return the new listing."""
        async with self._lock:
            current = await self._refresh()
            listing = Listing.create_from_draft(
                draft,
                listing_id=self._fresh_id(current),
                created_at=self._next_created_at(current),
            )
            await self._commit((*current, listing), action="create", listing_id=listing.id)

        logger.info(
            "listing_created",
            listing_id=listing.id,
            category=listing.category,
            images=len(listing.images),
        )
        return listing

    async def retire(self, listing_id: str) -> Listing:
        """Mark an active listing as sold and return the retired value."""
        async with self._lock:
            current = await self._refresh()
            listed = find_active(current, listing_id)
            if listed is None:
                raise NotFoundError(listing_id)

            sold = listed.mark_sold(self._clock())
            updated = tuple(sold if item is listed else item for item in current)
            stored = await self._commit(updated, action="retire", listing_id=listing_id)

        # another process sold it between our read and our write
        if next((item for item in stored if item.id == listing_id), sold) != sold:
            raise NotFoundError(listing_id)

        logger.info("listing_sold", listing_id=listing_id)
        return sold

    # -------------------------------------------------------------------------
    # Internals (lock must be held)
    # -------------------------------------------------------------------------

    async def _refresh(self) -> tuple[Listing, ...]:
        return merge_listings(self._listings, await self._gateway.load())

    async def _commit(self, listings: tuple[Listing, ...], *, action: str, listing_id: str) -> list[Listing]:
        try:
            stored = await self._gateway.save(listings)
        except StorageError:
            logger.error("listing_commit_failed", action=action, listing_id=listing_id)
            raise
        self._listings = merge_listings(stored, listings)
        return stored

    def _fresh_id(self, current: tuple[Listing, ...]) -> str:
        taken = {listing.id for listing in current}
        listing_id = self._id_factory()
        while listing_id in taken:
            listing_id = self._id_factory()
        return listing_id

    def _next_created_at(self, current: tuple[Listing, ...]) -> datetime:
        now = self._clock()
        if current:
            newest = max(listing.created_at for listing in current)
            if now < newest:
                return newest
        return now
