from dataclasses import dataclass, field, replace

import structlog

from src.application.interfaces.upload_store import IncomingAttachment, UploadStore
from src.application.listing_store import ListingStore
from src.domain.entities.listing import Listing, ListingDraft

logger = structlog.get_logger(__name__)


@dataclass
class CreateListingInput:
    draft: ListingDraft
    attachments: list[IncomingAttachment] = field(default_factory=list)


class CreateListing:
    """
    Use case: store the uploaded images, then create the listing that
    references them.

    Attachment validation happens before the store is touched, so a rejected
    upload never produces a listing. If the listing cannot be created, or the
    request is cancelled while it is being created, the images stored for it
    are deleted again.
    """

    def __init__(self, store: ListingStore, uploads: UploadStore) -> None:
        self._store = store
        self._uploads = uploads

    async def execute(self, input_data: CreateListingInput) -> Listing:
        paths = await self._uploads.store(input_data.attachments)
        draft = replace(input_data.draft, images=(*input_data.draft.images, *paths))

        try:
            return await self._store.create(draft)
        except BaseException as exc:
            if paths:
                await self._uploads.discard(paths)
                logger.info(
                    "attachments_discarded",
                    count=len(paths),
                    reason=getattr(exc, "code", type(exc).__name__),
                )
            raise
