"""
FastAPI dependency injection wiring.

The listing store and upload store are built once in the application
lifespan and kept on `app.state`; each dependency function below hands them
(or a use case wrapping them) to the route handlers, which keeps the
handlers thin and lets tests swap any piece with `dependency_overrides`.
"""
from fastapi import Depends, Request

from src.application.interfaces.upload_store import UploadStore
from src.application.listing_store import ListingStore
from src.application.use_cases.create_listing import CreateListing
from src.application.use_cases.mark_listing_sold import MarkListingSold
from src.application.use_cases.search_listings import SearchListings
from src.config import Settings


# ---- Low-level dependencies ------------------------------------------------

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_listing_store(request: Request) -> ListingStore:
    return request.app.state.listing_store


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.upload_store


# ---- Use-case dependencies -------------------------------------------------

def get_create_listing_use_case(
    store: ListingStore = Depends(get_listing_store),
    uploads: UploadStore = Depends(get_upload_store),
) -> CreateListing:
    return CreateListing(store, uploads)


def get_mark_listing_sold_use_case(
    store: ListingStore = Depends(get_listing_store),
) -> MarkListingSold:
    return MarkListingSold(store)


def get_search_listings_use_case(
    store: ListingStore = Depends(get_listing_store),
) -> SearchListings:
    return SearchListings(store)
