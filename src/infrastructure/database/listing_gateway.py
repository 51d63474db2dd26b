from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.application.interfaces.listing_gateway import ListingGateway
from src.domain.entities.listing import Listing
from src.domain.errors import StorageError
from src.infrastructure.database.models import ListingModel

logger = structlog.get_logger(__name__)


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_domain(model: ListingModel) -> Listing:
    return Listing(
        id=model.id,
        title=model.title,
        description=model.description,
        price=Decimal(model.price),
        seller=model.seller,
        category=model.category,
        contact=model.contact,
        condition=model.condition,
        images=tuple(model.images or ()),
        created_at=_utc(model.created_at),
        active=model.active,
        sold_at=_utc(model.sold_at) if model.sold_at is not None else None,
    )


def _to_model(listing: Listing, position: int) -> ListingModel:
    return ListingModel(
        id=listing.id,
        position=position,
        title=listing.title,
        description=listing.description,
        price=str(listing.price),
        seller=listing.seller,
        category=listing.category,
        contact=listing.contact,
        condition=listing.condition,
        images=list(listing.images),
        created_at=_utc(listing.created_at),
        active=listing.active,
        sold_at=_utc(listing.sold_at) if listing.sold_at is not None else None,
    )


class SqlAlchemyListingGateway(ListingGateway):
    """
    SQLAlchemy implementation of the listing gateway.

    Each save reads the stored rows and merges the collection into them
    inside one transaction: unknown listings are inserted after the last
    position, and an active row only ever changes by being marked sold.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self) -> list[Listing]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ListingModel).order_by(ListingModel.position, ListingModel.created_at)
                )
                models = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.warning("listing_table_unreadable", error=str(exc))
            return []
        return [_to_domain(m) for m in models]

    async def save(self, listings: Sequence[Listing]) -> list[Listing]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(ListingModel).order_by(ListingModel.position, ListingModel.created_at)
                    )
                    rows = {row.id: row for row in result.scalars()}
                    next_position = max((row.position for row in rows.values()), default=-1) + 1

                    for listing in listings:
                        row = rows.get(listing.id)
                        if row is None:
                            row = _to_model(listing, next_position)
                            session.add(row)
                            rows[listing.id] = row
                            next_position += 1
                        elif row.active and listing.sold_at is not None:
                            row.active = False
                            row.sold_at = _utc(listing.sold_at)

                    stored = [_to_domain(row) for row in rows.values()]
        except SQLAlchemyError as exc:
            logger.error("listing_table_write_failed", error=str(exc), listings=len(listings))
            raise StorageError() from exc
        return stored
