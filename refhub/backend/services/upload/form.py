"""
Editable reference form state.

Holds the values a user reviews before saving a reference: seeded from
extracted metadata, edited, then turned into the columns of a Reference.
"""

from dataclasses import dataclass, field
from typing import Any

from ...models import DocumentType, ExtractedMetadata, TechnicalDomain
from ..ai import title_from_filename


def _blank_entry() -> list[str]:
    # One empty row so the form always offers an input
    return [""]


def _optional(value: str) -> str | None:
    """Trim a string, mapping blank values to None."""
    return value.strip() or None


@dataclass
class ReferenceForm:
    """Current values of the upload form."""

    title: str = ""
    abstract: str = ""
    journal: str = ""
    doi: str = ""
    authors: list[str] = field(default_factory=_blank_entry)
    affiliations: list[str] = field(default_factory=_blank_entry)
    document_type: DocumentType = DocumentType.ARTICLE_SCIENTIFIQUE
    publication_year: str = ""
    technical_domain: TechnicalDomain | None = None
    review_status: str = ""
    source_verification: str = ""

    def apply_metadata(self, metadata: ExtractedMetadata, filename: str) -> None:
        """
        Seed the form from extracted metadata.

        Null values become empty defaults; the title falls back to the
        filename and empty author/affiliation lists to a single blank row.
        """
        self.title = metadata.title or title_from_filename(filename)
        self.abstract = metadata.abstract or ""
        self.journal = metadata.journal or ""
        self.doi = metadata.doi or ""
        self.authors = list(metadata.authors) if metadata.authors else _blank_entry()
        self.affiliations = (
            list(metadata.affiliations) if metadata.affiliations else _blank_entry()
        )

    def apply_fallback_title(self, filename: str) -> None:
        """Set only the filename-derived title, leaving other fields alone."""
        self.title = title_from_filename(filename)

    def has_title(self) -> bool:
        return bool(self.title.strip())

    def parsed_publication_year(self) -> int | None:
        """
        Publication year as an integer.

        Raises:
            ValueError: If a non-blank value is not an integer.
        """
        value = self.publication_year.strip()
        if not value:
            return None
        return int(value)

    def to_reference_fields(self) -> dict[str, Any]:
        """Column values for a new Reference row."""
        return {
            "title": self.title.strip(),
            "abstract": _optional(self.abstract),
            "journal": _optional(self.journal),
            "doi": _optional(self.doi),
            "authors": [a for a in self.authors if a.strip()],
            "affiliations": [a for a in self.affiliations if a.strip()],
            "document_type": self.document_type,
            "publication_year": self.parsed_publication_year(),
            "technical_domain": self.technical_domain,
            "review_status": _optional(self.review_status),
            "source_verification": _optional(self.source_verification),
        }
