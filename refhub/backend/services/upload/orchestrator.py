"""
Upload flow for new references.

The orchestrator holds the state of one upload form: the selected PDF,
the editable ReferenceForm and the notifications shown to the user.
Selecting a file triggers metadata extraction; submitting writes the file
to object storage and then inserts the Reference row.

The two writes are not transactional. If the insert fails after the upload
succeeded, the stored object is left in place.
"""

import base64
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...models import ExtractedMetadata
from ...models_db import Reference
from ..ai import AIServiceError
from ..storage_service import StorageError, StorageService
from .form import ReferenceForm

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


class MetadataGateway(Protocol):
    """Anything that can turn a base64 PDF into metadata."""

    async def extract(self, pdf_base64: str, filename: str) -> ExtractedMetadata: ...


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """Short user-facing message."""

    level: NotificationLevel
    message: str


class SubmissionFailure(str, Enum):
    """Step at which a submission stopped."""

    NOT_AUTHENTICATED = "not_authenticated"
    NO_FILE = "no_file"
    MISSING_TITLE = "missing_title"
    INVALID_FIELD = "invalid_field"
    STORAGE = "storage"
    DATABASE = "database"


@dataclass(frozen=True)
class SelectedFile:
    """A file chosen by the user, read fully into memory."""

    filename: str
    content_type: str | None
    data: bytes

    @property
    def is_pdf(self) -> bool:
        return self.content_type == PDF_MEDIA_TYPE

    @classmethod
    async def from_upload(cls, upload: UploadFile) -> "SelectedFile":
        try:
            data = await upload.read()
        finally:
            await upload.close()
        return cls(
            filename=upload.filename or "",
            content_type=upload.content_type,
            data=data,
        )


class UploadOrchestrator:
    """
    Coordinates file selection, extraction, editing and persistence.

    Concurrent calls on the same instance are not serialised.
    """

    def __init__(
        self,
        gateway: MetadataGateway | None = None,
        storage: StorageService | None = None,
        db: Session | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the orchestrator.

        Args:
            gateway: Metadata extraction gateway (in-process or HTTP);
                required to select files.
            storage: Object storage for the PDF; required to submit.
            db: Database session; required to submit.
            clock: Source of the timestamp used in storage paths.
        """
        self.gateway = gateway
        self.storage = storage
        self.db = db
        self.clock = clock

        self.file: SelectedFile | None = None
        self.form = ReferenceForm()
        self.is_extracting = False
        self.is_uploading = False
        self.notifications: list[Notification] = []
        self.last_failure: SubmissionFailure | None = None

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def _notify(self, level: NotificationLevel, message: str) -> None:
        self.notifications.append(Notification(level=level, message=message))

    def _fail(self, failure: SubmissionFailure, message: str) -> None:
        self.last_failure = failure
        self._notify(NotificationLevel.ERROR, message)

    # -------------------------------------------------------------------------
    # File selection and extraction
    # -------------------------------------------------------------------------

    async def select_files(self, files: Sequence[SelectedFile]) -> bool:
        """
        Accept a single PDF and extract its metadata into the form.

        Anything other than exactly one file declared as application/pdf is
        rejected without touching the form or calling the gateway.

        Returns:
            True if the file was accepted.
        """
        if len(files) != 1 or not files[0].is_pdf:
            logger.info(
                "Rejected file selection: %s",
                [(f.filename, f.content_type) for f in files],
            )
            self._notify(NotificationLevel.ERROR, "Please select a valid PDF file")
            return False

        self.file = files[0]
        await self.extract_metadata(self.file)
        return True

    async def extract_metadata(self, selected: SelectedFile) -> None:
        """
        Run the gateway on a file and seed the form with the result.

        Any gateway failure is recovered: only the filename-derived title is
        set and a warning is shown.
        """
        if self.gateway is None:
            raise RuntimeError("UploadOrchestrator needs a metadata gateway to extract")

        self.is_extracting = True
        try:
            pdf_base64 = base64.b64encode(selected.data).decode("ascii")
            metadata = await self.gateway.extract(pdf_base64, selected.filename)
        except AIServiceError as e:
            logger.error("Extraction error for %s: %s", selected.filename, e)
            self._extraction_failed(selected.filename)
        except Exception:
            logger.exception("Unexpected extraction error for %s", selected.filename)
            self._extraction_failed(selected.filename)
        else:
            self.form.apply_metadata(metadata, selected.filename)
            self._notify(NotificationLevel.SUCCESS, "Metadata extracted successfully")
        finally:
            self.is_extracting = False

    def _extraction_failed(self, filename: str) -> None:
        self.form.apply_fallback_title(filename)
        self._notify(
            NotificationLevel.WARNING,
            "Metadata extraction failed. Please fill in the fields manually.",
        )

    def clear_file(self) -> None:
        """Drop the selected file, keeping the form values."""
        self.file = None

    def reset(self) -> None:
        """Return the form to its initial state."""
        self.file = None
        self.form = ReferenceForm()
        self.last_failure = None

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def storage_path(self, user: CurrentUser, filename: str) -> str:
        """Object path namespaced by user and millisecond timestamp."""
        return f"{user.id}/{int(self.clock() * 1000)}-{filename}"

    async def submit(self, user: CurrentUser | None) -> Reference | None:
        """
        Save the selected file and the current form values.

        Preconditions are checked before any network call: an authenticated
        user, a selected file and a non-blank title. The file is then
        uploaded, its public URL resolved and one Reference inserted.

        Args:
            user: The authenticated caller, or None.

        Returns:
            The inserted Reference, or None if the submission stopped;
            last_failure then names the failing step.
        """
        self.last_failure = None

        if user is None or self.file is None:
            self._fail(
                SubmissionFailure.NOT_AUTHENTICATED if user is None else SubmissionFailure.NO_FILE,
                "Please sign in and select a file",
            )
            return None

        if not self.form.has_title():
            self._fail(SubmissionFailure.MISSING_TITLE, "Title is required")
            return None

        try:
            fields = self.form.to_reference_fields()
        except ValueError:
            self._fail(SubmissionFailure.INVALID_FIELD, "Publication year must be a number")
            return None

        if self.storage is None or self.db is None:
            raise RuntimeError("UploadOrchestrator needs storage and a database session to submit")

        self.is_uploading = True
        try:
            path = self.storage_path(user, self.file.filename)
            try:
                await self.storage.upload(
                    path,
                    self.file.data,
                    content_type=self.file.content_type or "application/pdf",
                )
            except StorageError as e:
                logger.error("Upload error for %s: %s", path, e)
                self._fail(SubmissionFailure.STORAGE, "Failed to store the PDF file")
                return None

            reference = Reference(
                user_id=user.id,
                pdf_url=self.storage.get_public_url(path),
                pdf_filename=self.file.filename,
                **fields,
            )
            try:
                self.db.add(reference)
                self.db.commit()
                self.db.refresh(reference)
            except SQLAlchemyError:
                self.db.rollback()
                # The stored object is intentionally left in the bucket
                logger.exception("Failed to insert reference for %s; orphaned object %s", user.id, path)
                self._fail(SubmissionFailure.DATABASE, "Failed to save the reference")
                return None
        finally:
            self.is_uploading = False

        logger.info("Created reference %s for user %s", reference.id, user.id)
        self._notify(NotificationLevel.SUCCESS, "Reference added successfully")
        self.reset()
        return reference
