from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_name: str = "Classificados dos Amigos"
    app_version: str = "1.0.0"

    # Listing persistence: "json" flat file (default) or "sql" via SQLAlchemy
    storage_backend: Literal["json", "sql"] = "json"
    data_file: str = "produtos.json"
    data_lock_timeout: float = 10.0
    database_url: str = "sqlite+aiosqlite:///./classificados.db"

    # Image uploads
    uploads_dir: str = "uploads"
    uploads_url_prefix: str = "/uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    max_images_per_listing: int = 5
    allowed_image_types: list[str] = ["jpeg", "jpg", "png", "webp"]

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()
