"""JSON and CSV export of references for administrators."""

import csv
import io
import json
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from ..models import DocumentType, ExportFormat
from ..models_db import Profile, Reference

EXPORT_COLUMNS = [
    "institution",
    "full_name",
    "institute",
    "department",
    "research_team",
    "document_type",
    "title",
    "journal",
    "publication_year",
    "authors",
    "affiliations",
    "technical_domain",
    "review_status",
    "source_verification",
    "abstract",
    "pdf_url",
    "created_at",
]

MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
}


def _source_verification(ref: Reference) -> str:
    # Legacy mapping kept as-is: any source or DOI yields the DOI URL
    if ref.source_verification or ref.doi:
        return f"https://doi.org/{ref.doi if ref.doi is not None else 'null'}"
    return ""


def build_export_row(ref: Reference, profile: Profile | None, institution: str) -> dict[str, Any]:
    """Flatten a reference and its contributor's profile into one export row."""
    document_type = ref.document_type or DocumentType.ARTICLE_SCIENTIFIQUE
    return {
        "institution": institution,
        "full_name": (profile.full_name if profile else None) or "Inconnu",
        "institute": (profile.institute if profile else None) or "",
        "department": (profile.department if profile else None) or "",
        "research_team": (profile.research_team if profile else None) or "",
        "document_type": document_type.label,
        "title": ref.title,
        "journal": ref.journal or "",
        "publication_year": ref.publication_year or "",
        "authors": "; ".join(ref.authors or []),
        "affiliations": "; ".join(ref.affiliations or []),
        "technical_domain": ref.technical_domain.label if ref.technical_domain else "",
        "review_status": ref.review_status or "",
        "source_verification": _source_verification(ref),
        "abstract": ref.abstract or "",
        "pdf_url": ref.pdf_url or "",
        "created_at": ref.created_at.isoformat(),
    }


def build_export_rows(
    references: Iterable[Reference],
    profiles: Mapping[Any, Profile],
    institution: str,
) -> list[dict[str, Any]]:
    """Export rows for references, joined with profiles keyed by user id."""
    return [build_export_row(ref, profiles.get(ref.user_id), institution) for ref in references]


def render_json(rows: list[dict[str, Any]]) -> str:
    """Indented JSON array; an empty export is an empty array."""
    return json.dumps(rows, indent=2, ensure_ascii=False)


def render_csv(rows: list[dict[str, Any]]) -> str:
    """
    CSV document with an unquoted header line.

    String values are always quoted with internal quotes doubled; numbers
    are written bare.
    """
    buffer = io.StringIO()
    buffer.write(",".join(EXPORT_COLUMNS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for row in rows:
        writer.writerow([row[column] for column in EXPORT_COLUMNS])
    # No terminator after the last line
    return buffer.getvalue()[:-1]


def render_export(rows: list[dict[str, Any]], export_format: ExportFormat) -> str:
    if export_format == ExportFormat.CSV:
        return render_csv(rows)
    return render_json(rows)


def export_filename(export_format: ExportFormat, today: date | None = None) -> str:
    """Download filename, e.g. references-export-2024-05-01.csv."""
    today = today or date.today()
    return f"references-export-{today.isoformat()}.{export_format.value}"
