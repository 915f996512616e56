"""
Services package for the reference library.

Contains:
- ai: metadata extraction through the AI gateway
- storage_service: object storage for uploaded PDFs
- upload: the upload flow (file selection, form seeding, persistence)
- export_service: JSON/CSV export of references for administrators
"""

from .ai import MetadataExtractor
from .storage_service import StorageService

__all__ = ["MetadataExtractor", "StorageService"]
