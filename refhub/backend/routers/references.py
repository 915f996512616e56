"""
Router for reference endpoints.

Handles:
- Public listing with search and sorting
- Reference details with the contributor's profile
- Upload drafts (metadata extraction into an editable form)
- Creating references from an uploaded PDF
- The owner's dashboard and deletion
"""

import logging
import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from ..auth import CurrentUser, get_current_user, get_optional_user
from ..database import get_db
from ..models import (
    DashboardResponse,
    DocumentType,
    DraftResponse,
    NotificationResponse,
    ProfileResponse,
    ReferenceDetailResponse,
    ReferenceFormResponse,
    ReferenceListItem,
    ReferenceListResponse,
    ReferenceResponse,
    SortOrder,
    TechnicalDomain,
)
from ..models_db import Profile, Reference
from ..services.ai import MetadataExtractor, get_metadata_extractor
from ..services.search import filter_references, sort_references
from ..services.storage_service import StorageService, get_storage_service
from ..services.upload import (
    ReferenceForm,
    SelectedFile,
    SubmissionFailure,
    UploadOrchestrator,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["references"])

FAILURE_STATUS = {
    SubmissionFailure.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    SubmissionFailure.NO_FILE: status.HTTP_400_BAD_REQUEST,
    SubmissionFailure.MISSING_TITLE: status.HTTP_400_BAD_REQUEST,
    SubmissionFailure.INVALID_FIELD: status.HTTP_400_BAD_REQUEST,
    SubmissionFailure.STORAGE: status.HTTP_502_BAD_GATEWAY,
    SubmissionFailure.DATABASE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _parse_uuid(value: str, kind: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {kind} ID format",
        )


def _form_response(form: ReferenceForm) -> ReferenceFormResponse:
    return ReferenceFormResponse(
        title=form.title,
        abstract=form.abstract,
        journal=form.journal,
        doi=form.doi,
        authors=form.authors,
        affiliations=form.affiliations,
        document_type=form.document_type,
        publication_year=form.publication_year,
        technical_domain=form.technical_domain,
        review_status=form.review_status,
        source_verification=form.source_verification,
    )


@router.get("/references", response_model=ReferenceListResponse)
async def list_references(
    q: str | None = None,
    sort: SortOrder = SortOrder.NEWEST,
    db: Session = Depends(get_db),
) -> ReferenceListResponse:
    """
    List all references with their contributor's name.

    Args:
        q: Case-insensitive search over title, abstract, journal and authors.
        sort: newest (default), oldest or title.
        db: Database session.
    """
    references = db.query(Reference).order_by(Reference.created_at.desc()).all()

    user_ids = {ref.user_id for ref in references}
    profiles: dict[uuid.UUID, Profile] = {}
    if user_ids:
        profiles = {
            p.user_id: p
            for p in db.query(Profile).filter(Profile.user_id.in_(user_ids)).all()
        }

    results = sort_references(filter_references(references, q), sort)

    items = []
    for ref in results:
        profile = profiles.get(ref.user_id)
        item = ReferenceListItem.model_validate(ref)
        item.contributor_name = (profile.full_name if profile else None) or "Anonyme"
        items.append(item)

    return ReferenceListResponse(references=items, total=len(items))


@router.get("/references/{reference_id}", response_model=ReferenceDetailResponse)
async def get_reference(
    reference_id: str,
    db: Session = Depends(get_db),
) -> ReferenceDetailResponse:
    """Get one reference and the profile of the user who added it."""
    ref_uuid = _parse_uuid(reference_id, "reference")

    reference = db.query(Reference).filter(Reference.id == ref_uuid).first()
    if not reference:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reference {reference_id} not found",
        )

    profile = db.query(Profile).filter(Profile.user_id == reference.user_id).first()

    return ReferenceDetailResponse(
        reference=ReferenceResponse.model_validate(reference),
        contributor=ProfileResponse.model_validate(profile) if profile else None,
    )


@router.post("/references/draft", response_model=DraftResponse)
async def create_draft(
    file: UploadFile = File(..., description="PDF file to analyze"),
    extractor: MetadataExtractor = Depends(get_metadata_extractor),
) -> DraftResponse:
    """
    Extract metadata from a PDF into an editable form.

    Extraction failures still return a form, seeded with the filename as
    title and a warning notification.
    """
    selected = await SelectedFile.from_upload(file)
    orchestrator = UploadOrchestrator(gateway=extractor)

    if not await orchestrator.select_files([selected]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only PDF files are accepted",
        )

    return DraftResponse(
        filename=selected.filename,
        form=_form_response(orchestrator.form),
        notifications=[
            NotificationResponse(level=n.level.value, message=n.message)
            for n in orchestrator.notifications
        ],
    )


@router.post(
    "/references",
    response_model=ReferenceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_reference(
    file: UploadFile | None = File(default=None, description="PDF file to store"),
    title: str = Form(default=""),
    abstract: str = Form(default=""),
    journal: str = Form(default=""),
    doi: str = Form(default=""),
    authors: list[str] = Form(default=[]),
    affiliations: list[str] = Form(default=[]),
    document_type: DocumentType = Form(default=DocumentType.ARTICLE_SCIENTIFIQUE),
    publication_year: str = Form(default=""),
    technical_domain: TechnicalDomain | None = Form(default=None),
    review_status: str = Form(default=""),
    source_verification: str = Form(default=""),
    user: CurrentUser | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
) -> ReferenceResponse:
    """
    Store an uploaded PDF and insert its reference.

    The file is written to object storage first; if the insert then fails
    the stored object is not removed.
    """
    orchestrator = UploadOrchestrator(storage=storage, db=db)
    if file is not None:
        selected = await SelectedFile.from_upload(file)
        # Anonymous callers get 401 from submit whatever the file type
        if user is not None and not selected.is_pdf:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only PDF files are accepted",
            )
        orchestrator.file = selected
    orchestrator.form = ReferenceForm(
        title=title,
        abstract=abstract,
        journal=journal,
        doi=doi,
        authors=authors,
        affiliations=affiliations,
        document_type=document_type,
        publication_year=publication_year,
        technical_domain=technical_domain,
        review_status=review_status,
        source_verification=source_verification,
    )

    reference = await orchestrator.submit(user)
    if reference is None:
        failure = orchestrator.last_failure or SubmissionFailure.DATABASE
        raise HTTPException(
            status_code=FAILURE_STATUS[failure],
            detail=orchestrator.notifications[-1].message,
        )

    return ReferenceResponse.model_validate(reference)


@router.get("/dashboard/references", response_model=DashboardResponse)
async def get_dashboard(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> DashboardResponse:
    """List the caller's own references, newest first."""
    references = (
        db.query(Reference)
        .filter(Reference.user_id == user.id)
        .order_by(Reference.created_at.desc())
        .all()
    )
    return DashboardResponse(
        references=[ReferenceResponse.model_validate(r) for r in references],
        total=len(references),
        with_pdf=sum(1 for r in references if r.pdf_url),
    )


@router.delete("/references/{reference_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reference(
    reference_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a reference owned by the caller."""
    ref_uuid = _parse_uuid(reference_id, "reference")

    reference = db.query(Reference).filter(Reference.id == ref_uuid).first()
    if not reference:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reference {reference_id} not found",
        )
    if reference.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner can delete this reference",
        )

    db.delete(reference)
    db.commit()

    logger.info("Deleted reference %s for user %s", reference_id, user.id)
