"""
Image Lifecycle Interfaces.

Protocol-based interfaces for the image collaborator: the upload endpoint
used while editing and the store of images attached to a post or snippet.
Implementations: HTTP upload client (adapters/http_upload.py), in-memory
fakes in tests.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, Protocol

AttachedType = Literal["post", "snippet"]


@dataclass(frozen=True)
class UploadTarget:
    """Where an uploaded image is attached."""

    project_id: str
    attached_type: AttachedType
    attached_url_name: str

    def query_params(self) -> dict[str, str]:
        return {
            "projectId": self.project_id,
            "attachedType": self.attached_type,
            "attachedUrlName": self.attached_url_name,
        }


@dataclass(frozen=True)
class ImageRecord:
    """An uploaded image and the document it was uploaded for."""

    key: str
    attached_url_name: str


class ImageUploadPort(Protocol):
    """Uploads image bytes and returns the stored file path."""

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        target: UploadTarget,
    ) -> str:
        """
        Upload one image.

        Returns:
            File path (URL) of the stored image.

        Raises:
            ImageUploadError: With the server-provided message.
        """
        ...


class AttachedImagesPort(Protocol):
    """Images attached to posts and snippets by url name."""

    def find_by_url_name(self, url_name: str) -> list[ImageRecord]:
        """All images attached to url_name."""
        ...

    def delete(self, images: Sequence[ImageRecord]) -> int:
        """Delete images from storage and index. Returns how many were deleted."""
        ...
