from fastapi import APIRouter, Depends

from src.api.dependencies import get_listing_store, get_settings
from src.api.schemas.listing_responses import HealthResponse, ServiceInfoResponse
from src.application.listing_store import ListingStore
from src.config import Settings

router = APIRouter(tags=["health"])


@router.get("/", response_model=ServiceInfoResponse)
async def service_info(app_settings: Settings = Depends(get_settings)) -> ServiceInfoResponse:
    return ServiceInfoResponse(
        message=f"API {app_settings.app_name} funcionando!",
        version=app_settings.app_version,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: ListingStore = Depends(get_listing_store),
    app_settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """Liveness check; reports the storage backend and how many listings are loaded."""
    return HealthResponse(status="healthy", storage=app_settings.storage_backend, listings=len(store))
