from abc import ABC, abstractmethod
from collections.abc import Sequence

from src.domain.entities.listing import Listing


class ListingGateway(ABC):
    """
    Port for durably storing the whole listing collection.

    Implementations are the only code that touches the storage medium. The
    medium may be shared with other processes, so `save` folds the given
    collection into whatever is stored instead of replacing it.
    """

    @abstractmethod
    async def load(self) -> list[Listing]:
        """Return the stored collection, or [] when nothing has been stored yet."""
        ...

    @abstractmethod
    async def save(self, listings: Sequence[Listing]) -> list[Listing]:
        """
        Merge the collection into the stored one and return the result.

        Listings unknown to the medium are appended; stored listings missing
        from `listings` are kept; a listing stored as sold stays sold.
        Raises StorageError on failure.
        """
        ...
