"""
HTTP Image Upload Adapter.

Implements ImageUploadPort against the app's upload endpoint:
POST <endpoint>?projectId&attachedType&attachedUrlName with a multipart
"image" field. A successful response is {"data": {"filePath": "..."}}.
"""

from __future__ import annotations

import logging

import httpx

from src.core.ports.images import UploadTarget
from src.domain.errors import ImageUploadError
from src.rules.models import UploadRules

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Upload failed with status {response.status_code}"


class HttpImageUploader:
    """
    Upload client for the image endpoint.

    transport can be injected (httpx.MockTransport in tests).
    """

    def __init__(
        self,
        base_url: str,
        *,
        rules: UploadRules | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rules = rules or UploadRules()
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        target: UploadTarget,
    ) -> str:
        url = f"{self.base_url}{self.rules.endpoint}"
        files = {"image": (filename, data, content_type)}

        try:
            async with httpx.AsyncClient(
                timeout=self.rules.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(url, params=target.query_params(), files=files)
        except httpx.TimeoutException as e:
            raise ImageUploadError(
                f"Upload timed out after {self.rules.timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            raise ImageUploadError(f"Upload request failed: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.warning("Upload rejected (%d): %s", response.status_code, message)
            raise ImageUploadError(message, status_code=response.status_code)

        try:
            file_path = response.json()["data"]["filePath"]
        except (ValueError, KeyError, TypeError) as e:
            raise ImageUploadError("Upload response did not include a file path") from e
        if not isinstance(file_path, str) or not file_path:
            raise ImageUploadError("Upload response did not include a file path")

        logger.info("Uploaded %s to %s", filename, file_path)
        return file_path
