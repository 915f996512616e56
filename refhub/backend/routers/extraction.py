"""
Router for the metadata extraction endpoint.

Handles:
- Extraction of bibliographic metadata from a base64-encoded PDF
- Cross-origin preflight for browser clients
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from ..models import ExtractedMetadata, ExtractMetadataErrorResponse, ExtractMetadataRequest
from ..services.ai import AIServiceError, MetadataExtractor, get_metadata_extractor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["extraction"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _error_response(message: str, status_code: int) -> JSONResponse:
    """Error message alongside all-null metadata fields."""
    body = ExtractMetadataErrorResponse(error=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(),
        headers=CORS_HEADERS,
    )


@router.options("/extract-pdf-metadata")
async def extract_pdf_metadata_preflight() -> Response:
    """Answer a preflight request without running extraction."""
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post("/extract-pdf-metadata", response_model=ExtractedMetadata)
async def extract_pdf_metadata(
    request: ExtractMetadataRequest,
    extractor: MetadataExtractor = Depends(get_metadata_extractor),
) -> JSONResponse:
    """
    Extract title, abstract, journal, DOI, authors and affiliations.

    A reply the model formats badly still succeeds, with the filename as
    title and every other field null. Gateway failures return 500 with an
    error message and all-null fields.
    """
    if not request.pdf_base64:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "No PDF data provided"},
            headers=CORS_HEADERS,
        )

    try:
        metadata = await extractor.extract(request.pdf_base64, request.filename)
    except AIServiceError as e:
        logger.error("Error extracting PDF metadata: %s", e)
        return _error_response(str(e), status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception as e:
        logger.exception("Unexpected error extracting PDF metadata")
        return _error_response(str(e) or "Unknown error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JSONResponse(content=metadata.model_dump(), headers=CORS_HEADERS)
