"""
AI service package for bibliographic metadata extraction.

This package provides:
- metadata: prompt construction, the gateway call and reply parsing
- exceptions: errors raised when the gateway call fails
"""

from .exceptions import AIServiceError
from .metadata import (
    MAX_PAYLOAD_CHARS,
    MetadataExtractor,
    build_extraction_prompt,
    fallback_metadata,
    get_metadata_extractor,
    parse_metadata_response,
    strip_code_fences,
    title_from_filename,
)

__all__ = [
    "AIServiceError",
    "MAX_PAYLOAD_CHARS",
    "MetadataExtractor",
    "build_extraction_prompt",
    "fallback_metadata",
    "get_metadata_extractor",
    "parse_metadata_response",
    "strip_code_fences",
    "title_from_filename",
]
