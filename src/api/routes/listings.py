from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from src.api.dependencies import (
    get_create_listing_use_case,
    get_listing_store,
    get_mark_listing_sold_use_case,
    get_search_listings_use_case,
    get_settings,
)
from src.api.schemas.listing_responses import ErrorResponse, ListingResponse, MessageResponse
from src.application.interfaces.upload_store import IncomingAttachment
from src.application.listing_store import ListingStore
from src.application.use_cases.create_listing import CreateListing, CreateListingInput
from src.application.use_cases.mark_listing_sold import MarkListingSold, MarkListingSoldInput
from src.application.use_cases.search_listings import SearchListings, SearchListingsInput
from src.config import Settings
from src.domain.entities.listing import ListingDraft

router = APIRouter(prefix="/api", tags=["listings"])

_ERRORS = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


async def _read_attachments(files: list[UploadFile], max_bytes: int) -> list[IncomingAttachment]:
    attachments = []
    for upload in files:
        if not upload.filename:
            continue
        # One byte past the limit is enough for the size check to reject it
        data = await upload.read(max_bytes + 1)
        attachments.append(
            IncomingAttachment(
                filename=upload.filename,
                content_type=upload.content_type or "",
                data=data,
            )
        )
    return attachments


@router.get("/produtos", response_model=list[ListingResponse])
async def list_listings(
    use_case: SearchListings = Depends(get_search_listings_use_case),
) -> list[ListingResponse]:
    """List active listings, newest first."""
    return [ListingResponse.from_listing(l) for l in use_case.list_active()]


@router.get("/produtos/{listing_id}", response_model=ListingResponse, responses=_ERRORS)
async def get_listing(
    listing_id: str,
    store: ListingStore = Depends(get_listing_store),
) -> ListingResponse:
    return ListingResponse.from_listing(store.get(listing_id))


@router.post(
    "/produtos",
    status_code=status.HTTP_201_CREATED,
    response_model=ListingResponse,
    responses=_ERRORS,
)
async def create_listing(
    title: str | None = Form(default=None, alias="titulo"),
    description: str | None = Form(default=None, alias="descricao"),
    price: str | None = Form(default=None, alias="preco"),
    category: str | None = Form(default=None, alias="categoria"),
    seller: str | None = Form(default=None, alias="vendedor"),
    contact: str | None = Form(default=None, alias="whatsapp"),
    condition: str | None = Form(default=None, alias="condicao"),
    images: list[UploadFile] | None = File(default=None, alias="imagens"),
    use_case: CreateListing = Depends(get_create_listing_use_case),
    app_settings: Settings = Depends(get_settings),
) -> ListingResponse:
    """Create a listing from a multipart form with up to five images."""
    draft = ListingDraft(
        title=title,
        description=description,
        price=price,
        seller=seller,
        category=category,
        contact=contact,
        condition=condition,
    )
    attachments = await _read_attachments(images or [], app_settings.max_upload_bytes)
    listing = await use_case.execute(CreateListingInput(draft=draft, attachments=attachments))
    return ListingResponse.from_listing(listing)


@router.put("/produtos/{listing_id}/vendido", response_model=MessageResponse, responses=_ERRORS)
async def mark_listing_sold(
    listing_id: str,
    use_case: MarkListingSold = Depends(get_mark_listing_sold_use_case),
) -> MessageResponse:
    await use_case.execute(MarkListingSoldInput(listing_id=listing_id))
    return MessageResponse(message="Produto marcado como vendido")


@router.get("/buscar", response_model=list[ListingResponse])
async def search_listings(
    q: str | None = Query(default=None),
    categoria: str | None = Query(default=None),
    use_case: SearchListings = Depends(get_search_listings_use_case),
) -> list[ListingResponse]:
    """Search active listings by free text and category."""
    results = use_case.execute(SearchListingsInput(query=q, category=categoria))
    return [ListingResponse.from_listing(l) for l in results]
