"""
Bibliographic metadata extraction from PDF documents.

Sends a bounded excerpt of the base64-encoded PDF to an OpenAI-compatible
chat completion endpoint and parses the textual reply into an
ExtractedMetadata record.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from ...models import ExtractedMetadata
from .exceptions import AIServiceError

logger = logging.getLogger(__name__)

# Upper bound on the base64 characters forwarded to the model
MAX_PAYLOAD_CHARS = 50_000
MAX_TOKENS = 2000
TEMPERATURE = 0.1


# =============================================================================
# Extraction Prompt
# =============================================================================

EXTRACTION_PROMPT_TEMPLATE = """Analyze this PDF document (provided as base64) and extract the following metadata if available:
- Title of the article
- Abstract/Summary
- Journal or Conference name
- DOI (Digital Object Identifier)
- List of authors (as an array)
- Author affiliations (as an array)

Respond ONLY with a valid JSON object in this exact format (no markdown, no code blocks):
{{
  "title": "string or null",
  "abstract": "string or null",
  "journal": "string or null",
  "doi": "string or null",
  "authors": ["array of strings"] or null,
  "affiliations": ["array of strings"] or null
}}

If a field cannot be extracted, use null for that field.

PDF filename: {filename}
PDF content (first 50KB base64): {payload}"""


def build_extraction_prompt(pdf_base64: str, filename: str) -> str:
    """
    Build the extraction instruction for one document.

    Only the first MAX_PAYLOAD_CHARS characters of the payload are embedded.
    """
    return EXTRACTION_PROMPT_TEMPLATE.format(
        filename=filename,
        payload=pdf_base64[:MAX_PAYLOAD_CHARS],
    )


# =============================================================================
# Response Parsing
# =============================================================================


def title_from_filename(filename: str) -> str:
    """Derive a default title by removing a trailing ".pdf"."""
    if filename.endswith(".pdf"):
        return filename[: -len(".pdf")]
    return filename


def fallback_metadata(filename: str) -> ExtractedMetadata:
    """Metadata used when the model reply cannot be parsed."""
    return ExtractedMetadata(title=title_from_filename(filename))


def strip_code_fences(content: str) -> str:
    """Remove markdown code fences wrapping a model reply."""
    cleaned = content.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_metadata_response(content: str, filename: str) -> ExtractedMetadata:
    """
    Parse the model's textual reply into ExtractedMetadata.

    Args:
        content: Raw completion text, possibly wrapped in code fences.
        filename: Original filename, used for the fallback title.

    Returns:
        The parsed record, or the filename-derived fallback if the reply
        is not a JSON object matching the six recognised fields.
    """
    cleaned = strip_code_fences(content)
    try:
        data = json.loads(cleaned)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return ExtractedMetadata.model_validate(data)
    except (ValueError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        logger.error("Failed to parse AI response for %s: %s", filename, e)
        return fallback_metadata(filename)


# =============================================================================
# Extractor
# =============================================================================


class MetadataExtractor:
    """
    Client for the metadata extraction call.

    Issues a single chat completion per document with a fixed model,
    token budget and temperature. No retry is attempted.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        client: Any = None,
    ):
        """
        Initialize the extractor.

        Args:
            api_key: Gateway credential. If None, read from settings.
            base_url: Base URL of the OpenAI-compatible API.
            model: Model identifier.
            client: Pre-built OpenAI client (used by tests).
        """
        if api_key is None or base_url is None or model is None:
            from ...config import get_settings

            settings = get_settings()
            api_key = settings.ai_gateway_api_key if api_key is None else api_key
            base_url = base_url or settings.ai_gateway_base_url
            model = model or settings.ai_model

        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self._client = client

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise AIServiceError("AI gateway API key not configured")
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def extract(self, pdf_base64: str, filename: str) -> ExtractedMetadata:
        """
        Extract bibliographic metadata from a base64-encoded PDF.

        Args:
            pdf_base64: The document, base64-encoded.
            filename: Original filename.

        Returns:
            Parsed metadata; the filename fallback if the reply is malformed.

        Raises:
            AIServiceError: If the credential is missing or the call fails.
        """
        logger.info("Extracting metadata from PDF: %s", filename)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": build_extraction_prompt(pdf_base64, filename),
                    },
                ],
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURE,
            )
        except AIServiceError:
            raise
        except Exception as e:
            logger.exception("AI gateway call failed")
            raise AIServiceError(f"AI API error: {e}") from e

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        logger.debug("AI response: %s", content[:500])

        return parse_metadata_response(content, filename)


# =============================================================================
# Singleton Factory
# =============================================================================

_metadata_extractor: MetadataExtractor | None = None


def get_metadata_extractor() -> MetadataExtractor:
    """Get or create the metadata extractor singleton."""
    global _metadata_extractor
    if _metadata_extractor is None:
        _metadata_extractor = MetadataExtractor()
    return _metadata_extractor
