from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class IncomingAttachment:
    filename: str
    content_type: str
    data: bytes


class UploadStore(ABC):
    """Port for validating and storing listing images."""

    @abstractmethod
    async def store(self, attachments: Sequence[IncomingAttachment]) -> list[str]:
        """
        Validate every attachment, then store them all.

        Returns the public paths in input order. Raises AttachmentError before
        anything is written if any attachment breaks the policy.
        """
        ...

    @abstractmethod
    async def discard(self, paths: Sequence[str]) -> None:
        """Delete previously stored attachments. Missing files are ignored."""
        ...
