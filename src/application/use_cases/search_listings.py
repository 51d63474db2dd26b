from dataclasses import dataclass

from src.application.listing_store import ListingStore
from src.application.queries.listing_queries import list_active, search
from src.domain.entities.listing import Listing


@dataclass
class SearchListingsInput:
    query: str | None = None
    category: str | None = None


class SearchListings:
    """Use case: run the query engine over the store's current snapshot."""

    def __init__(self, store: ListingStore) -> None:
        self._store = store

    def list_active(self) -> list[Listing]:
        return list_active(self._store.snapshot())

    def execute(self, input_data: SearchListingsInput) -> list[Listing]:
        return search(self._store.snapshot(), input_data.query, input_data.category)
