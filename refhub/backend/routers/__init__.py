"""
Routers package for FastAPI endpoints.

Organized by domain:
- admin: Administrator listing and export
- extraction: Metadata extraction endpoint
- profiles: Public profiles and profile editing
- references: Listing, details, upload and deletion of references
"""

from . import admin, extraction, profiles, references

__all__ = ["admin", "extraction", "profiles", "references"]
