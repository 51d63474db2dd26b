"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from src.api.error_handlers import register_error_handlers
from src.api.routes import health, listings
from src.application.interfaces.listing_gateway import ListingGateway
from src.application.listing_store import ListingStore
from src.config import Settings, settings
from src.infrastructure.database.connection import create_engine, create_session_factory, init_models
from src.infrastructure.database.listing_gateway import SqlAlchemyListingGateway
from src.infrastructure.persistence.json_file_gateway import JsonFileListingGateway
from src.infrastructure.uploads.local_upload_store import LocalUploadStore
from src.logging_config import configure_logging

logger = structlog.get_logger(__name__)


def build_upload_store(app_settings: Settings) -> LocalUploadStore:
    return LocalUploadStore(
        app_settings.uploads_dir,
        url_prefix=app_settings.uploads_url_prefix,
        max_bytes=app_settings.max_upload_bytes,
        max_files=app_settings.max_images_per_listing,
        allowed_types=app_settings.allowed_image_types,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings
    configure_logging(app_settings)
    logger.info("classificados_starting", storage=app_settings.storage_backend)

    upload_store = build_upload_store(app_settings)
    upload_store.ensure_directory()

    engine = None
    gateway: ListingGateway
    if app_settings.storage_backend == "sql":
        engine = create_engine(app_settings.database_url)
        await init_models(engine)
        gateway = SqlAlchemyListingGateway(create_session_factory(engine))
    else:
        gateway = JsonFileListingGateway(app_settings.data_file, lock_timeout=app_settings.data_lock_timeout)

    app.state.upload_store = upload_store
    app.state.listing_store = await ListingStore.open(gateway)
    try:
        yield
    finally:
        if engine is not None:
            await engine.dispose()
        logger.info("classificados_stopping")


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or settings

    app = FastAPI(
        title=app_settings.app_name,
        description="Backend for listing, searching and selling second-hand items.",
        version=app_settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(listings.router)
    app.mount(
        app_settings.uploads_url_prefix,
        StaticFiles(directory=app_settings.uploads_dir, check_dir=False),
        name="uploads",
    )

    return app


app = create_app()
