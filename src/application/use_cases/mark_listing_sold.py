from dataclasses import dataclass

from src.application.listing_store import ListingStore
from src.domain.entities.listing import Listing


@dataclass
class MarkListingSoldInput:
    listing_id: str


class MarkListingSold:
    """
    Use case: retire an active listing.

    Raises NotFoundError if the listing does not exist or is already sold,
    and StorageError if the change could not be committed.
    """

    def __init__(self, store: ListingStore) -> None:
        self._store = store

    async def execute(self, input_data: MarkListingSoldInput) -> Listing:
        return await self._store.retire(input_data.listing_id)
