"""
Image lifecycle - uploads from the editor and orphan cleanup.

Key behaviors:
- An upload inserts a loading placeholder first and swaps it for an image
  node when the upload finishes
- A failed or cancelled upload leaves the placeholder in a failed state
  and re-raises; the document is never rolled back
- Without an upload target (no project or url name) uploading is a no-op
- Cancelling a new document deletes all its images; cancelling an edit
  deletes only images the saved document no longer references
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from src.core.ports.images import (
    AttachedImagesPort,
    ImageRecord,
    ImageUploadPort,
    UploadTarget,
)
from src.core.services.editor import Editor
from src.domain.document import ElementNode, Node, TextNode, find_image_urls, get_children
from src.domain.errors import ImageUploadError

logger = logging.getLogger(__name__)

LOADING_TYPE = "loading"
IMAGE_TYPE = "img"
CANCELLED_MESSAGE = "Upload cancelled"


def _mark_failed(placeholder: ElementNode, message: str) -> None:
    placeholder.attributes["failed"] = True
    placeholder.attributes["error"] = message


async def upload_image(
    editor: Editor,
    uploader: ImageUploadPort,
    data: bytes,
    filename: str,
    content_type: str,
    target: UploadTarget | None,
) -> str | None:
    """
    Upload an image and insert it at the cursor.

    Returns:
        The stored file path, or None when there is no upload target.

    Raises:
        ImageUploadError: The upload failed; the placeholder is marked failed.
        asyncio.CancelledError: The upload was cancelled; same treatment.
    """
    if target is None:
        logger.debug("No upload target, ignoring image %s", filename)
        return None

    placeholder = editor.create_element(LOADING_TYPE)
    editor.insert_node(placeholder)

    try:
        file_path = await uploader.upload(data, filename, content_type, target)
    except ImageUploadError as e:
        logger.warning("Image upload failed for %s: %s", filename, e.message)
        _mark_failed(placeholder, e.message)
        raise
    except asyncio.CancelledError:
        logger.info("Image upload cancelled for %s", filename)
        _mark_failed(placeholder, CANCELLED_MESSAGE)
        raise

    path = editor.path_of(placeholder)
    if path is None:
        # placeholder was deleted while uploading
        return file_path

    image = ElementNode(
        IMAGE_TYPE,
        [TextNode("")],
        {"id": placeholder.attributes.get("id"), "url": file_path},
    )
    siblings = get_children(editor.document, path[:-1])  # type: ignore[arg-type]
    siblings[path[-1]] = image
    return file_path


# --- Cleanup ---


def select_unused_images(images: Sequence[ImageRecord], used_urls: Sequence[str]) -> list[ImageRecord]:
    """Images whose key appears in none of the used URLs."""
    return [image for image in images if not any(image.key in url for url in used_urls)]


class ImageCleanupService:
    """Deletes images orphaned by cancelled edits."""

    def __init__(self, images: AttachedImagesPort) -> None:
        self.images = images

    def cancel_new(self, url_name: str) -> int:
        """A new post/snippet was abandoned: delete every attached image."""
        attached = self.images.find_by_url_name(url_name)
        deleted = self.images.delete(attached) if attached else 0
        logger.info("Deleted %d image(s) for abandoned %s", deleted, url_name)
        return deleted

    def cancel_edit(self, url_name: str, saved_document: Sequence[Node]) -> int:
        """An edit was abandoned: delete images the saved version does not use."""
        attached = self.images.find_by_url_name(url_name)
        unused = select_unused_images(attached, find_image_urls(saved_document))
        deleted = self.images.delete(unused) if unused else 0
        logger.info("Deleted %d unused image(s) for %s", deleted, url_name)
        return deleted
