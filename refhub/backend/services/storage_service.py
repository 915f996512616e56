"""
Object storage for uploaded PDFs.

Talks to a Supabase-compatible storage REST API with httpx. Objects are
written to a single public bucket so that their URLs can be shared.
"""

import logging
from urllib.parse import quote

import httpx

from ..config import get_settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when an object storage operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class StorageService:
    """
    Service for storing PDF files.

    Each upload is a single POST of the raw bytes; no retry is attempted
    and no uniqueness check is made on the target path.
    """

    def __init__(
        self,
        base_url: str | None = None,
        service_role_key: str | None = None,
        bucket: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the storage service.

        Args:
            base_url: Storage project URL. If None, read from settings.
            service_role_key: Key used to authenticate uploads.
            bucket: Bucket holding the PDFs.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        settings = get_settings()
        self.url = (base_url or settings.supabase_url).rstrip("/")
        self.service_role_key = (
            settings.supabase_service_role_key if service_role_key is None else service_role_key
        )
        self.bucket = bucket or settings.storage_bucket
        self.timeout = timeout or settings.http_timeout
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }
        self._transport = transport

    async def upload(
        self,
        path: str,
        content: bytes,
        content_type: str = "application/pdf",
    ) -> str:
        """
        Upload raw bytes to the bucket.

        Args:
            path: Target path within the bucket.
            content: File content.
            content_type: Declared media type of the content.

        Returns:
            The stored object's path.

        Raises:
            StorageError: If the upload fails.
        """
        upload_url = f"{self.base_api_url}/object/{self.bucket}/{quote(path, safe='/')}"

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    upload_url,
                    headers={**self.headers, "Content-Type": content_type},
                    content=content,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error("Error uploading %s to storage: %s", path, e)
            raise StorageError(f"Storage upload error: {e}", original_error=e) from e

        if response.status_code != 200:
            logger.error(
                "Failed to upload %s to bucket %s (status %d): %s",
                path,
                self.bucket,
                response.status_code,
                response.text,
            )
            raise StorageError(f"Upload failed: {response.text}")

        logger.info("Stored %s (%d bytes) in bucket %s", path, len(content), self.bucket)
        return path

    def get_public_url(self, path: str) -> str:
        """Return the public URL of an object in the bucket."""
        return f"{self.base_api_url}/object/public/{self.bucket}/{quote(path, safe='/')}"


# =============================================================================
# Singleton Factory
# =============================================================================

_storage_service: StorageService | None = None


def get_storage_service() -> StorageService:
    """Get or create the storage service singleton."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
