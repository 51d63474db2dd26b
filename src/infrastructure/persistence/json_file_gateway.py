"""
Flat-file listing persistence.

The whole collection lives in one JSON array. A save re-reads the document
under an inter-process file lock, folds the collection into it and writes the
result to a temporary sibling that is fsync'ed and renamed over the target,
so concurrent writers never lose each other's listings and readers never see
a half-written document. Blocking file I/O runs in the default executor to
keep the event loop free.
"""
import asyncio
import json
import os
from collections.abc import Sequence
from functools import partial
from pathlib import Path
from typing import Any

import filelock
import structlog

from src.application.interfaces.listing_gateway import ListingGateway
from src.domain.entities.listing import Listing
from src.domain.errors import StorageError
from src.infrastructure.persistence.listing_codec import listing_from_record, listing_to_record

logger = structlog.get_logger(__name__)


def _decode(document: list[Any]) -> list[Listing]:
    listings: list[Listing] = []
    for index, record in enumerate(document):
        if not isinstance(record, dict):
            logger.warning("listing_record_skipped", index=index, error="not an object")
            continue
        try:
            listings.append(listing_from_record(record))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("listing_record_skipped", index=index, error=repr(exc))
    return listings


def _merge_records(document: list[Any], listings: Sequence[Listing]) -> list[Any]:
    """
    Fold listings into the stored records.

    Records that do not decode and keys the codec does not know are written
    back untouched. A record stored as sold is never overwritten.
    """
    records = list(document)
    index_by_id: dict[str, int] = {}
    for index, record in enumerate(records):
        if isinstance(record, dict) and isinstance(record.get("id"), str):
            index_by_id.setdefault(record["id"], index)

    for listing in listings:
        index = index_by_id.get(listing.id)
        if index is None:
            index_by_id[listing.id] = len(records)
            records.append(listing_to_record(listing))
        elif records[index].get("ativo") is not False:
            records[index] = {**records[index], **listing_to_record(listing)}
    return records


class JsonFileListingGateway(ListingGateway):
    def __init__(self, path: str | Path, *, lock_timeout: float = 10.0) -> None:
        self._path = Path(path)
        self._tmp_path = self._path.with_name(self._path.name + ".tmp")
        self._lock = filelock.FileLock(str(self._path.with_name(self._path.name + ".lock")), timeout=lock_timeout)

    async def load(self) -> list[Listing]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._load_sync)

    async def save(self, listings: Sequence[Listing]) -> list[Listing]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(self._save_sync, list(listings)))

    # -------------------------------------------------------------------------
    # Blocking helpers (executor threads)
    # -------------------------------------------------------------------------

    def _load_sync(self) -> list[Listing]:
        return _decode(self._read_document())

    def _read_document(self) -> list[Any]:
        if not self._path.exists():
            logger.info("listing_file_missing", path=str(self._path))
            return []

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            logger.warning("listing_file_unreadable", path=str(self._path), error=str(exc))
            return []

        if not isinstance(raw, list):
            logger.warning("listing_file_unexpected_shape", path=str(self._path), type=type(raw).__name__)
            return []
        return raw

    def _save_sync(self, listings: list[Listing]) -> list[Listing]:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                document = _merge_records(self._read_document(), listings)
                with open(self._tmp_path, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, ensure_ascii=False)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(self._tmp_path, self._path)
        except filelock.Timeout as exc:
            logger.error("listing_file_lock_timeout", path=str(self._path))
            raise StorageError() from exc
        except OSError as exc:
            logger.error("listing_file_write_failed", path=str(self._path), error=str(exc))
            raise StorageError() from exc

        logger.debug("listing_file_written", path=str(self._path), records=len(document))
        return _decode(document)
