"""
Router for administrator endpoints.

Handles:
- Listing all references with contributor profiles
- Summary counters
- JSON/CSV export downloads
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..auth import CurrentUser, require_admin
from ..config import Settings, get_settings
from ..database import get_db
from ..models import (
    AdminReferenceItem,
    AdminReferenceListResponse,
    AdminStatsResponse,
    ExportFormat,
    ProfileResponse,
    ReferenceResponse,
)
from ..models_db import Profile, Reference
from ..services.export_service import (
    MEDIA_TYPES,
    build_export_rows,
    export_filename,
    render_export,
)
from ..services.search import filter_admin_references

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _load_references_and_profiles(
    db: Session,
) -> tuple[list[Reference], dict[uuid.UUID, Profile]]:
    """All references, newest first, and their contributors' profiles by user id."""
    references = db.query(Reference).order_by(Reference.created_at.desc()).all()
    user_ids = {ref.user_id for ref in references}
    profiles: dict[uuid.UUID, Profile] = {}
    if user_ids:
        profiles = {
            p.user_id: p
            for p in db.query(Profile).filter(Profile.user_id.in_(user_ids)).all()
        }
    return references, profiles


@router.get("/references", response_model=AdminReferenceListResponse)
async def list_all_references(
    q: str | None = None,
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> AdminReferenceListResponse:
    """
    List every reference with its contributor's profile.

    Args:
        q: Case-insensitive search over title, journal and contributor name.
    """
    references, profiles = _load_references_and_profiles(db)
    filtered = filter_admin_references(references, profiles, q)

    items = []
    for ref in filtered:
        profile = profiles.get(ref.user_id)
        items.append(
            AdminReferenceItem(
                reference=ReferenceResponse.model_validate(ref),
                contributor=ProfileResponse.model_validate(profile) if profile else None,
            )
        )
    return AdminReferenceListResponse(references=items, total=len(items))


@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> AdminStatsResponse:
    """Counts of references, contributors and stored PDFs."""
    references = db.query(Reference).all()
    return AdminStatsResponse(
        total_references=len(references),
        contributors=len({ref.user_id for ref in references}),
        with_pdf=sum(1 for ref in references if ref.pdf_url),
    )


@router.get("/export")
async def export_references(
    format: ExportFormat = ExportFormat.JSON,
    q: str | None = None,
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Response:
    """
    Download the filtered references as a JSON or CSV attachment.

    An empty selection exports an empty JSON array or a header-only CSV.
    """
    references, profiles = _load_references_and_profiles(db)
    filtered = filter_admin_references(references, profiles, q)

    rows = build_export_rows(filtered, profiles, settings.export_institution)
    content = render_export(rows, format)
    filename = export_filename(format)

    logger.info("Admin %s exported %d references as %s", admin.id, len(rows), format.value)

    return Response(
        content=content,
        media_type=MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
