"""Tests for the upload flow."""

import base64
import copy
import uuid
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from refhub.backend.auth import CurrentUser
from refhub.backend.main import app
from refhub.backend.models import DocumentType, ExtractedMetadata, TechnicalDomain
from refhub.backend.models_db import Reference
from refhub.backend.services.upload import (
    HttpGatewayClient,
    NotificationLevel,
    ReferenceForm,
    SelectedFile,
    SubmissionFailure,
    UploadOrchestrator,
)

from conftest import FakeExtractor, FakeStorage


def _pdf(name: str = "paper.pdf", data: bytes = b"%PDF-1.4 test") -> SelectedFile:
    return SelectedFile(filename=name, content_type="application/pdf", data=data)


@pytest.fixture
def user() -> CurrentUser:
    return CurrentUser(id=uuid.uuid4(), email="researcher@example.org")


class TestFileSelection:
    """Tests for selecting a file and seeding the form."""

    @pytest.mark.asyncio
    async def test_non_pdf_leaves_form_unchanged(self):
        extractor = FakeExtractor(ExtractedMetadata(title="Nope"))
        orchestrator = UploadOrchestrator(gateway=extractor)
        orchestrator.form.title = "Draft in progress"
        before = copy.deepcopy(orchestrator.form)

        accepted = await orchestrator.select_files(
            [SelectedFile(filename="notes.txt", content_type="text/plain", data=b"hello")]
        )

        assert accepted is False
        assert orchestrator.form == before
        assert orchestrator.file is None
        assert extractor.calls == []
        assert orchestrator.notifications[-1].level == NotificationLevel.ERROR

    @pytest.mark.asyncio
    async def test_pdf_extension_with_wrong_media_type_rejected(self):
        extractor = FakeExtractor()
        orchestrator = UploadOrchestrator(gateway=extractor)

        accepted = await orchestrator.select_files(
            [SelectedFile(filename="paper.pdf", content_type="application/octet-stream", data=b"%PDF")]
        )

        assert accepted is False
        assert extractor.calls == []

    @pytest.mark.asyncio
    async def test_multiple_files_rejected(self):
        extractor = FakeExtractor()
        orchestrator = UploadOrchestrator(gateway=extractor)

        accepted = await orchestrator.select_files([_pdf("a.pdf"), _pdf("b.pdf")])

        assert accepted is False
        assert extractor.calls == []

    @pytest.mark.asyncio
    async def test_gateway_receives_base64_and_filename(self):
        extractor = FakeExtractor()
        orchestrator = UploadOrchestrator(gateway=extractor)

        await orchestrator.select_files([_pdf("paper.pdf", b"%PDF-1.7 body")])

        assert extractor.calls == [(base64.b64encode(b"%PDF-1.7 body").decode(), "paper.pdf")]
        assert orchestrator.is_extracting is False

    @pytest.mark.asyncio
    async def test_empty_author_list_gives_one_blank_field(self):
        extractor = FakeExtractor(ExtractedMetadata(title="T", authors=[], affiliations=[]))
        orchestrator = UploadOrchestrator(gateway=extractor)

        await orchestrator.select_files([_pdf()])

        assert orchestrator.form.authors == [""]
        assert orchestrator.form.affiliations == [""]

    @pytest.mark.asyncio
    async def test_null_fields_become_empty_defaults(self):
        orchestrator = UploadOrchestrator(gateway=FakeExtractor(ExtractedMetadata()))

        await orchestrator.select_files([_pdf("My Thesis.pdf")])

        form = orchestrator.form
        assert form.title == "My Thesis"
        assert (form.abstract, form.journal, form.doi) == ("", "", "")
        assert form.authors == [""]
        assert orchestrator.notifications[-1].level == NotificationLevel.SUCCESS

    @pytest.mark.asyncio
    async def test_gateway_failure_sets_only_title(self):
        orchestrator = UploadOrchestrator(gateway=FakeExtractor(error="AI API error: 500"))
        orchestrator.form.journal = "Kept"
        orchestrator.form.authors = ["Someone"]

        accepted = await orchestrator.select_files([_pdf("report.pdf")])

        assert accepted is True
        assert orchestrator.form.title == "report"
        assert orchestrator.form.journal == "Kept"
        assert orchestrator.form.authors == ["Someone"]
        assert orchestrator.notifications[-1].level == NotificationLevel.WARNING
        assert orchestrator.is_extracting is False

    @pytest.mark.asyncio
    async def test_unexpected_gateway_error_is_recovered(self):
        gateway = MagicMock()
        gateway.extract = AsyncMock(side_effect=AttributeError("'list' object has no attribute 'strip'"))
        orchestrator = UploadOrchestrator(gateway=gateway)

        accepted = await orchestrator.select_files([_pdf("Field Notes.pdf")])

        assert accepted is True
        assert orchestrator.form.title == "Field Notes"
        assert orchestrator.form.authors == [""]
        assert orchestrator.notifications[-1].level == NotificationLevel.WARNING
        assert orchestrator.is_extracting is False


class TestSubmission:
    """Tests for saving a reference."""

    @pytest.mark.asyncio
    async def test_requires_authenticated_user(self, db_session: Session):
        storage = FakeStorage()
        orchestrator = UploadOrchestrator(FakeExtractor(), storage, db_session)
        orchestrator.file = _pdf()
        orchestrator.form.title = "Title"

        assert await orchestrator.submit(None) is None
        assert orchestrator.last_failure == SubmissionFailure.NOT_AUTHENTICATED
        assert storage.upload_calls == 0

    @pytest.mark.asyncio
    async def test_requires_selected_file(self, db_session: Session, user: CurrentUser):
        storage = FakeStorage()
        orchestrator = UploadOrchestrator(FakeExtractor(), storage, db_session)
        orchestrator.form.title = "Title"

        assert await orchestrator.submit(user) is None
        assert orchestrator.last_failure == SubmissionFailure.NO_FILE
        assert storage.upload_calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title", ["", "   ", "\t\n"])
    async def test_blank_title_rejected_before_network(
        self, db_session: Session, user: CurrentUser, title: str
    ):
        storage = FakeStorage()
        orchestrator = UploadOrchestrator(FakeExtractor(), storage, db_session)
        orchestrator.file = _pdf()
        orchestrator.form = ReferenceForm(
            title=title,
            abstract="Abstract",
            journal="Journal",
            doi="10.1/x",
            authors=["A"],
            publication_year="2020",
        )

        assert await orchestrator.submit(user) is None
        assert orchestrator.last_failure == SubmissionFailure.MISSING_TITLE
        assert orchestrator.notifications[-1].message == "Title is required"
        assert storage.upload_calls == 0
        assert db_session.query(Reference).count() == 0

    @pytest.mark.asyncio
    async def test_invalid_year_rejected(self, db_session: Session, user: CurrentUser):
        storage = FakeStorage()
        orchestrator = UploadOrchestrator(FakeExtractor(), storage, db_session)
        orchestrator.file = _pdf()
        orchestrator.form = ReferenceForm(title="T", publication_year="twenty")

        assert await orchestrator.submit(user) is None
        assert orchestrator.last_failure == SubmissionFailure.INVALID_FIELD
        assert storage.upload_calls == 0

    @pytest.mark.asyncio
    async def test_storage_path_namespaced_by_user_and_timestamp(
        self, db_session: Session, user: CurrentUser
    ):
        storage = FakeStorage()
        orchestrator = UploadOrchestrator(
            FakeExtractor(), storage, db_session, clock=lambda: 1700000000.5
        )
        orchestrator.file = _pdf("paper.pdf", b"%PDF bytes")
        orchestrator.form.title = "Title"

        reference = await orchestrator.submit(user)

        path = f"{user.id}/1700000000500-paper.pdf"
        assert storage.objects == {path: b"%PDF bytes"}
        assert reference.pdf_url == storage.get_public_url(path)
        assert reference.pdf_filename == "paper.pdf"

    @pytest.mark.asyncio
    async def test_round_trip_drops_blank_entries(self, db_session: Session, user: CurrentUser):
        orchestrator = UploadOrchestrator(FakeExtractor(), FakeStorage(), db_session)
        orchestrator.file = _pdf()
        orchestrator.form = ReferenceForm(
            title="  Padded title  ",
            abstract="   ",
            authors=["A", "  ", "B", ""],
            affiliations=["", "X"],
            document_type=DocumentType.CHAPITRE_LIVRE,
            technical_domain=TechnicalDomain.SDS,
            publication_year=" 2021 ",
            review_status="Peer-reviewed",
        )

        reference = await orchestrator.submit(user)
        assert reference is not None

        db_session.expire_all()
        stored = db_session.query(Reference).filter(Reference.id == reference.id).one()
        assert stored.title == "Padded title"
        assert stored.abstract is None
        assert stored.journal is None
        assert stored.authors == ["A", "B"]
        assert stored.affiliations == ["X"]
        assert stored.document_type == DocumentType.CHAPITRE_LIVRE
        assert stored.technical_domain == TechnicalDomain.SDS
        assert stored.publication_year == 2021
        assert stored.review_status == "Peer-reviewed"
        assert stored.source_verification is None
        assert stored.user_id == user.id

    @pytest.mark.asyncio
    async def test_submit_needs_no_gateway(self, db_session: Session, user: CurrentUser):
        orchestrator = UploadOrchestrator(storage=FakeStorage(), db=db_session)
        orchestrator.file = _pdf()
        orchestrator.form.title = "Title"

        assert await orchestrator.submit(user) is not None

    @pytest.mark.asyncio
    async def test_success_resets_form(self, db_session: Session, user: CurrentUser):
        orchestrator = UploadOrchestrator(FakeExtractor(), FakeStorage(), db_session)
        orchestrator.file = _pdf()
        orchestrator.form.title = "Title"

        await orchestrator.submit(user)

        assert orchestrator.file is None
        assert orchestrator.form == ReferenceForm()
        assert orchestrator.notifications[-1].level == NotificationLevel.SUCCESS

    @pytest.mark.asyncio
    async def test_storage_failure_skips_insert(self, db_session: Session, user: CurrentUser):
        storage = FakeStorage(fail=True)
        orchestrator = UploadOrchestrator(FakeExtractor(), storage, db_session)
        orchestrator.file = _pdf()
        orchestrator.form.title = "Title"

        assert await orchestrator.submit(user) is None
        assert orchestrator.last_failure == SubmissionFailure.STORAGE
        assert db_session.query(Reference).count() == 0
        assert orchestrator.is_uploading is False
        # Form is kept so the user can retry
        assert orchestrator.form.title == "Title"

    @pytest.mark.asyncio
    async def test_insert_failure_leaves_stored_object(self, user: CurrentUser):
        storage = FakeStorage()
        db = MagicMock()
        db.commit.side_effect = OperationalError("INSERT", {}, Exception("database is down"))
        orchestrator = UploadOrchestrator(FakeExtractor(), storage, db)
        orchestrator.file = _pdf()
        orchestrator.form.title = "Title"

        assert await orchestrator.submit(user) is None
        assert orchestrator.last_failure == SubmissionFailure.DATABASE
        assert len(storage.objects) == 1
        db.rollback.assert_called_once()


class TestEndToEnd:
    """Upload flow against the extraction endpoint over HTTP."""

    @pytest.mark.asyncio
    async def test_paper_pdf_scenario(
        self, api_overrides, db_session: Session, fake_storage: FakeStorage, user: CurrentUser
    ):
        gateway = HttpGatewayClient(
            url="http://testserver/extract-pdf-metadata",
            transport=httpx.ASGITransport(app=app),
        )
        orchestrator = UploadOrchestrator(gateway, fake_storage, db_session)

        assert await orchestrator.select_files([_pdf("paper.pdf")])

        form = orchestrator.form
        assert form.title == "Study X"
        assert form.abstract == ""
        assert form.journal == "Nature"
        assert form.doi == "10.1/xyz"
        assert form.authors == ["J. Doe"]
        assert form.affiliations == [""]

        reference = await orchestrator.submit(user)

        assert reference is not None
        db_session.expire_all()
        stored = db_session.query(Reference).one()
        assert stored.title == "Study X"
        assert stored.abstract is None
        assert stored.journal == "Nature"
        assert stored.doi == "10.1/xyz"
        assert stored.authors == ["J. Doe"]
        assert stored.affiliations == []

    @pytest.mark.asyncio
    async def test_gateway_error_status_falls_back_to_filename(
        self, api_overrides, fake_extractor: FakeExtractor, db_session: Session
    ):
        fake_extractor.error = "AI gateway API key not configured"
        gateway = HttpGatewayClient(
            url="http://testserver/extract-pdf-metadata",
            transport=httpx.ASGITransport(app=app),
        )
        orchestrator = UploadOrchestrator(gateway, FakeStorage(), db_session)

        assert await orchestrator.select_files([_pdf("Annual Report.pdf")])

        assert orchestrator.form.title == "Annual Report"
        assert orchestrator.form.journal == ""
        assert orchestrator.notifications[-1].level == NotificationLevel.WARNING
