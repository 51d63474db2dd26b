#!/usr/bin/env python3
"""Classificados dos Amigos - start the API server."""

import uvicorn

from src.config import settings


def main() -> None:
    print(f"Starting {settings.app_name} on http://{settings.host}:{settings.port}")
    print(f"Storage backend: {settings.storage_backend}")
    print(f"Uploads saved in: {settings.uploads_dir}")
    uvicorn.run("src.api.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
