"""
Local-disk image storage for listing attachments.

Files land in `uploads_dir` under collision-resistant names
(`<epoch-millis>-<random><original extension>`) and are exposed to clients as
`<url_prefix>/<name>`, served by the static mount of the API.
"""
import asyncio
import secrets
import time
from collections.abc import Sequence
from functools import partial
from pathlib import Path, PurePosixPath

import structlog

from src.application.interfaces.upload_store import IncomingAttachment, UploadStore
from src.domain.errors import AttachmentError, StorageError

logger = structlog.get_logger(__name__)

_NAME_ATTEMPTS = 5


class LocalUploadStore(UploadStore):
    def __init__(
        self,
        uploads_dir: str | Path,
        *,
        url_prefix: str = "/uploads",
        max_bytes: int = 5 * 1024 * 1024,
        max_files: int = 5,
        allowed_types: Sequence[str] = ("jpeg", "jpg", "png", "webp"),
    ) -> None:
        self._dir = Path(uploads_dir)
        self._url_prefix = url_prefix.rstrip("/")
        self._max_bytes = max_bytes
        self._max_files = max_files
        self._allowed_types = frozenset(t.lower() for t in allowed_types)

    @property
    def directory(self) -> Path:
        return self._dir

    def ensure_directory(self) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)

    # -------------------------------------------------------------------------
    # Policy
    # -------------------------------------------------------------------------

    def validate(self, attachments: Sequence[IncomingAttachment]) -> None:
        """Raise AttachmentError for the first attachment that breaks the policy."""
        if len(attachments) > self._max_files:
            raise AttachmentError(
                f"Máximo de {self._max_files} imagens por produto",
                code="too_many_attachments",
            )
        for attachment in attachments:
            extension = PurePosixPath(attachment.filename).suffix.lower().lstrip(".")
            subtype = attachment.content_type.lower().partition("/")[2]
            if extension not in self._allowed_types or subtype not in self._allowed_types:
                raise AttachmentError()
            if len(attachment.data) > self._max_bytes:
                limit_mb = self._max_bytes // (1024 * 1024)
                raise AttachmentError(
                    f"Arquivo muito grande. Máximo {limit_mb}MB.",
                    code="attachment_too_large",
                )

    # -------------------------------------------------------------------------
    # UploadStore
    # -------------------------------------------------------------------------

    async def store(self, attachments: Sequence[IncomingAttachment]) -> list[str]:
        self.validate(attachments)
        if not attachments:
            return []

        loop = asyncio.get_running_loop()
        paths = await loop.run_in_executor(None, partial(self._write_all, list(attachments)))
        logger.info("attachments_stored", count=len(paths))
        return paths

    async def discard(self, paths: Sequence[str]) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, partial(self._delete_all, list(paths)))

    # -------------------------------------------------------------------------
    # Blocking helpers (executor threads)
    # -------------------------------------------------------------------------

    def _write_all(self, attachments: list[IncomingAttachment]) -> list[str]:
        written: list[Path] = []
        try:
            self.ensure_directory()
            for attachment in attachments:
                written.append(self._write_one(attachment))
        except OSError as exc:
            logger.error("attachment_write_failed", error=str(exc), written=len(written))
            for path in written:
                path.unlink(missing_ok=True)
            raise StorageError("Erro ao salvar imagem") from exc
        return [f"{self._url_prefix}/{path.name}" for path in written]

    def _write_one(self, attachment: IncomingAttachment) -> Path:
        extension = PurePosixPath(attachment.filename).suffix
        for _ in range(_NAME_ATTEMPTS):
            target = self._dir / self._unique_name(extension)
            try:
                with open(target, "xb") as f:
                    f.write(attachment.data)
            except FileExistsError:
                continue
            except OSError:
                target.unlink(missing_ok=True)
                raise
            return target
        raise FileExistsError(f"could not find a free name in {self._dir}")

    @staticmethod
    def _unique_name(extension: str) -> str:
        return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{extension}"

    def _delete_all(self, paths: list[str]) -> None:
        for public_path in paths:
            # Only the basename is trusted; paths always point inside uploads_dir
            target = self._dir / PurePosixPath(public_path).name
            try:
                target.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("attachment_delete_failed", path=str(target), error=str(exc))
