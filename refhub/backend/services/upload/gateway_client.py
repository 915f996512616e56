"""
HTTP client for the metadata extraction endpoint.

Used when the upload flow runs in a different process from the gateway.
"""

import logging

import httpx
from pydantic import ValidationError

from ...models import ExtractedMetadata
from ..ai import AIServiceError

logger = logging.getLogger(__name__)


class HttpGatewayClient:
    """Calls POST /extract-pdf-metadata and returns the parsed metadata."""

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.headers = headers or {}
        self._transport = transport

    async def extract(self, pdf_base64: str, filename: str) -> ExtractedMetadata:
        """
        Request metadata extraction for one document.

        Raises:
            AIServiceError: On transport failure, a non-success status or a
                response body that does not match ExtractedMetadata.
        """
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    json={"pdfBase64": pdf_base64, "filename": filename},
                    headers=self.headers,
                )
        except httpx.HTTPError as e:
            raise AIServiceError(f"Extraction request failed: {e}") from e

        if not response.is_success:
            message = None
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = body.get("error")
            raise AIServiceError(message or f"Extraction failed with status {response.status_code}")

        try:
            return ExtractedMetadata.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise AIServiceError(f"Malformed extraction response: {e}") from e
