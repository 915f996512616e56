"""
Upload flow: file selection, metadata seeding and persistence.
"""

from .form import ReferenceForm
from .gateway_client import HttpGatewayClient
from .orchestrator import (
    Notification,
    NotificationLevel,
    SelectedFile,
    SubmissionFailure,
    UploadOrchestrator,
)

__all__ = [
    "HttpGatewayClient",
    "Notification",
    "NotificationLevel",
    "ReferenceForm",
    "SelectedFile",
    "SubmissionFailure",
    "UploadOrchestrator",
]
