"""
Read views over a listing snapshot.

Pure functions: they never mutate their input and never raise domain errors.
"""
from collections.abc import Iterable

from src.domain.entities.listing import Listing

ALL_CATEGORIES = frozenset({"todos", "all"})


def list_active(snapshot: Iterable[Listing]) -> list[Listing]:
    """Active listings, newest first. Ties keep insertion order."""
    active = [listing for listing in snapshot if listing.active]
    # sorted() with reverse=True is still stable for equal keys
    return sorted(active, key=lambda listing: listing.created_at, reverse=True)


def find_active(snapshot: Iterable[Listing], listing_id: str) -> Listing | None:
    for listing in snapshot:
        if listing.id == listing_id and listing.active:
            return listing
    return None


def search(
    snapshot: Iterable[Listing],
    query: str | None = None,
    category: str | None = None,
) -> list[Listing]:
    """
    Filter active listings by free text and category.

    `query` matches case-insensitively against title, description or seller.
    A blank query, a blank category or one of ALL_CATEGORIES disables that
    filter. Both filters combine with AND.
    """
    results = list_active(snapshot)

    term = (query or "").strip().casefold()
    if term:
        results = [listing for listing in results if _matches(listing, term)]

    wanted = (category or "").strip()
    if wanted and wanted not in ALL_CATEGORIES:
        results = [listing for listing in results if listing.category == wanted]

    return results


def _matches(listing: Listing, term: str) -> bool:
    return (
        term in listing.title.casefold()
        or term in listing.description.casefold()
        or term in listing.seller.casefold()
    )
