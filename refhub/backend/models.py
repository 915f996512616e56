"""
Pydantic models for the reference library API.

Defines the enumerations shared with the ORM layer, the strict record
returned by metadata extraction, and request/response bodies.
"""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DocumentType(str, Enum):
    """Classification of an uploaded document."""

    ARTICLE_SCIENTIFIQUE = "article_scientifique"
    CHAPITRE_LIVRE = "chapitre_livre"
    OUVRAGE_SCIENTIFIQUE = "ouvrage_scientifique"
    TECHNOLOGIE = "technologie"
    INNOVATION = "innovation"

    @property
    def label(self) -> str:
        return _DOCUMENT_TYPE_LABELS[self]


class TechnicalDomain(str, Enum):
    """Scientific field a reference belongs to."""

    ST = "ST"
    SDS = "SDS"
    LSH = "LSH"
    SEG = "SEG"
    SJP = "SJP"

    @property
    def label(self) -> str:
        return _TECHNICAL_DOMAIN_LABELS[self]


_DOCUMENT_TYPE_LABELS = {
    DocumentType.ARTICLE_SCIENTIFIQUE: "Article Scientifique",
    DocumentType.CHAPITRE_LIVRE: "Chapitre de livre",
    DocumentType.OUVRAGE_SCIENTIFIQUE: "Ouvrage Scientifique",
    DocumentType.TECHNOLOGIE: "Technologie",
    DocumentType.INNOVATION: "Innovation",
}

_TECHNICAL_DOMAIN_LABELS = {
    TechnicalDomain.ST: "Sciences et Technologies",
    TechnicalDomain.SDS: "Sciences de la Santé",
    TechnicalDomain.LSH: "Lettres et Sciences Humaines",
    TechnicalDomain.SEG: "Sciences Économiques et de Gestion",
    TechnicalDomain.SJP: "Sciences Juridiques et Politiques",
}


class SortOrder(str, Enum):
    """Ordering options for the public reference list."""

    NEWEST = "newest"
    OLDEST = "oldest"
    TITLE = "title"


class ExportFormat(str, Enum):
    """File formats offered by the admin export."""

    JSON = "json"
    CSV = "csv"


# =============================================================================
# Metadata Extraction Models
# =============================================================================


class ExtractedMetadata(BaseModel):
    """
    Bibliographic fields read from a document by the AI gateway.

    Every field is optional: the model returns null for anything it cannot
    find. Keys other than the six recognised fields are dropped, and a
    value of the wrong shape fails validation as a whole.
    """

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    abstract: str | None = None
    journal: str | None = None
    doi: str | None = None
    authors: list[str] | None = None
    affiliations: list[str] | None = None


class ExtractMetadataRequest(BaseModel):
    """Request body for the metadata extraction endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    pdf_base64: str | None = Field(
        default=None,
        alias="pdfBase64",
        description="Base64-encoded PDF content",
    )
    filename: str = Field(
        default="",
        description="Original filename of the document",
    )


class ExtractMetadataErrorResponse(ExtractedMetadata):
    """Error payload: the message plus all-null metadata fields."""

    error: str


# =============================================================================
# Reference Models
# =============================================================================


class ReferenceResponse(BaseModel):
    """A stored reference."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    abstract: str | None = None
    journal: str | None = None
    doi: str | None = None
    authors: list[str] = Field(default_factory=list)
    affiliations: list[str] = Field(default_factory=list)
    document_type: DocumentType = DocumentType.ARTICLE_SCIENTIFIQUE
    technical_domain: TechnicalDomain | None = None
    publication_year: int | None = None
    review_status: str | None = None
    source_verification: str | None = None
    pdf_url: str | None = None
    pdf_filename: str | None = None
    created_at: datetime


class ReferenceListItem(ReferenceResponse):
    """A reference in the public list, with the contributor's display name."""

    contributor_name: str = Field(default="Anonyme")


class ReferenceListResponse(BaseModel):
    """Response model for listing references."""

    references: list[ReferenceListItem] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Number of references returned")


class DashboardResponse(BaseModel):
    """The caller's own references."""

    references: list[ReferenceResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    with_pdf: int = Field(..., ge=0, description="References with a stored PDF")


# =============================================================================
# Profile Models
# =============================================================================


class ProfileResponse(BaseModel):
    """A user's public academic identity."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    full_name: str | None = None
    institute: str | None = None
    department: str | None = None
    research_team: str | None = None
    bio: str | None = None
    created_at: datetime


class ProfileUpdateRequest(BaseModel):
    """Editable profile fields. Omitted fields are left unchanged."""

    full_name: str | None = Field(default=None, max_length=255)
    institute: str | None = Field(default=None, max_length=255)
    department: str | None = Field(default=None, max_length=255)
    research_team: str | None = Field(default=None, max_length=255)
    bio: str | None = Field(default=None, max_length=5000)

    @field_validator("full_name", "institute", "department", "research_team", "bio")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Store blank strings as absent values."""
        if v is None:
            return None
        return v.strip() or None


class ReferenceDetailResponse(BaseModel):
    """A single reference with its contributor's profile."""

    reference: ReferenceResponse
    contributor: ProfileResponse | None = None


class PublicProfileResponse(BaseModel):
    """A profile and the references its owner contributed."""

    profile: ProfileResponse
    references: list[ReferenceResponse] = Field(default_factory=list)


# =============================================================================
# Upload Models
# =============================================================================


class NotificationResponse(BaseModel):
    """Short user-facing message emitted by the upload flow."""

    level: str
    message: str


class ReferenceFormResponse(BaseModel):
    """Editable form state seeded from extracted metadata."""

    title: str
    abstract: str
    journal: str
    doi: str
    authors: list[str]
    affiliations: list[str]
    document_type: DocumentType
    publication_year: str
    technical_domain: TechnicalDomain | None
    review_status: str
    source_verification: str


class DraftResponse(BaseModel):
    """Result of selecting a file for upload."""

    filename: str
    form: ReferenceFormResponse
    notifications: list[NotificationResponse] = Field(default_factory=list)


# =============================================================================
# Admin Models
# =============================================================================


class AdminReferenceItem(BaseModel):
    """A reference joined with its contributor's profile."""

    reference: ReferenceResponse
    contributor: ProfileResponse | None = None


class AdminReferenceListResponse(BaseModel):
    """Response model for the admin reference table."""

    references: list[AdminReferenceItem] = Field(default_factory=list)
    total: int = Field(..., ge=0)


class AdminStatsResponse(BaseModel):
    """Counters shown on the admin view."""

    total_references: int = Field(..., ge=0)
    contributors: int = Field(..., ge=0)
    with_pdf: int = Field(..., ge=0)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    message: str = Field(default="")
    version: str = Field(default="1.0.0")
